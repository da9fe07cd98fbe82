"""
Errors raised by the stack deployment engine.
"""

from typing import Optional


class StackDeployError(Exception):
    """Base class for deployment failures that carry the stack they concern."""

    def __init__(self, message: str, stack_name: Optional[str] = None):
        super().__init__(message)
        self.stack_name = stack_name


class ConfigurationError(StackDeployError):
    """The stack or tool is misconfigured; nothing was sent to AWS."""


class TemplateTooLargeError(StackDeployError):
    """Template exceeds the inline size limit and no template bucket is available."""

    def __init__(self, message: str, stack_name: Optional[str] = None, size: int = 0):
        super().__init__(message, stack_name)
        self.size = size


class StackStateError(StackDeployError):
    """A stack ended up in a terminal state the operation cannot accept."""

    def __init__(self, message: str, stack_name: Optional[str] = None, status: Optional[str] = None):
        super().__init__(message, stack_name)
        self.status = status


class StackDeletedError(StackStateError):
    """A stack disappeared while it was expected to still exist."""


class ChangeSetCreationError(StackDeployError):
    """A changeset failed to create for a reason other than having no changes."""

    def __init__(
        self,
        message: str,
        stack_name: Optional[str] = None,
        change_set_name: Optional[str] = None,
        status: Optional[str] = None,
    ):
        super().__init__(message, stack_name)
        self.change_set_name = change_set_name
        self.status = status
