"""
CloudFormation stack deployment through changesets.
"""

from .activity_monitor import StackActivityMonitor, monitor_stack_activity
from .artifact import Environment, StackArtifact
from .assets import FileAsset, prepare_assets
from .bootstrap import bootstrap_environment
from .deploy_stack import (
    DeployStackOptions,
    DeployStackResult,
    DestroyStackOptions,
    deploy_stack,
    destroy_stack,
)
from .errors import (
    ChangeSetCreationError,
    ConfigurationError,
    StackDeletedError,
    StackDeployError,
    StackStateError,
    TemplateTooLargeError,
)
from .sdk import SDK, Mode
from .stack_status import StackState, StackStatus, StackStatusClass, classify_stack_status
from .template import TemplateBodyParameter, make_body_parameter
from .toolkit import ToolkitInfo

__all__ = [
    "SDK",
    "ChangeSetCreationError",
    "ConfigurationError",
    "DeployStackOptions",
    "DeployStackResult",
    "DestroyStackOptions",
    "Environment",
    "FileAsset",
    "Mode",
    "StackActivityMonitor",
    "StackArtifact",
    "StackDeletedError",
    "StackDeployError",
    "StackState",
    "StackStateError",
    "StackStatus",
    "StackStatusClass",
    "TemplateBodyParameter",
    "TemplateTooLargeError",
    "ToolkitInfo",
    "bootstrap_environment",
    "classify_stack_status",
    "deploy_stack",
    "destroy_stack",
    "make_body_parameter",
    "monitor_stack_activity",
    "prepare_assets",
]
