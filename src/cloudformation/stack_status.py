"""
CloudFormation stack status values and their classification.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class StackStatusClass(Enum):
    """Simplified view of where a stack is in its lifecycle."""

    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILURE = "failure"
    NOT_FOUND = "not_found"


class StackStatus(Enum):
    """Every status CloudFormation reports for a stack."""

    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    CREATE_FAILED = "CREATE_FAILED"
    CREATE_COMPLETE = "CREATE_COMPLETE"
    ROLLBACK_IN_PROGRESS = "ROLLBACK_IN_PROGRESS"
    ROLLBACK_FAILED = "ROLLBACK_FAILED"
    ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"
    DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"
    DELETE_FAILED = "DELETE_FAILED"
    DELETE_COMPLETE = "DELETE_COMPLETE"
    UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
    UPDATE_COMPLETE_CLEANUP_IN_PROGRESS = "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS"
    UPDATE_COMPLETE = "UPDATE_COMPLETE"
    UPDATE_FAILED = "UPDATE_FAILED"
    UPDATE_ROLLBACK_IN_PROGRESS = "UPDATE_ROLLBACK_IN_PROGRESS"
    UPDATE_ROLLBACK_FAILED = "UPDATE_ROLLBACK_FAILED"
    UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS = (
        "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS"
    )
    UPDATE_ROLLBACK_COMPLETE = "UPDATE_ROLLBACK_COMPLETE"
    REVIEW_IN_PROGRESS = "REVIEW_IN_PROGRESS"
    IMPORT_IN_PROGRESS = "IMPORT_IN_PROGRESS"
    IMPORT_COMPLETE = "IMPORT_COMPLETE"
    IMPORT_ROLLBACK_IN_PROGRESS = "IMPORT_ROLLBACK_IN_PROGRESS"
    IMPORT_ROLLBACK_FAILED = "IMPORT_ROLLBACK_FAILED"
    IMPORT_ROLLBACK_COMPLETE = "IMPORT_ROLLBACK_COMPLETE"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["StackStatus"]:
        """Return the matching member, or None for missing or unknown values."""
        if raw is None:
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


# A stack in one of these states can only be recovered by deleting it.
FAILED_CREATION_STATUSES = frozenset(
    {
        StackStatus.ROLLBACK_COMPLETE,
        StackStatus.ROLLBACK_FAILED,
        StackStatus.CREATE_FAILED,
    }
)

_NOT_FOUND_STATUSES = frozenset(
    {StackStatus.DELETE_COMPLETE, StackStatus.REVIEW_IN_PROGRESS}
)


def classify_stack_status(raw: Optional[str]) -> StackStatusClass:
    """Classify a raw status string; None means no stack was found."""
    if raw is None:
        return StackStatusClass.NOT_FOUND

    status = StackStatus.parse(raw)
    if status is None:
        # Unknown values are assumed to still be moving.
        return StackStatusClass.IN_PROGRESS

    if status in _NOT_FOUND_STATUSES:
        return StackStatusClass.NOT_FOUND
    if status.value.endswith("_IN_PROGRESS"):
        return StackStatusClass.IN_PROGRESS
    if status.value.endswith("_FAILED") or "ROLLBACK" in status.value:
        return StackStatusClass.FAILURE
    return StackStatusClass.SUCCESS


@dataclass(frozen=True)
class StackState:
    """Status of a described stack, with the reason CloudFormation gave."""

    status: str
    reason: Optional[str] = None

    @classmethod
    def from_description(cls, description: Dict[str, Any]) -> "StackState":
        return cls(
            status=description["StackStatus"],
            reason=description.get("StackStatusReason"),
        )

    @property
    def classification(self) -> StackStatusClass:
        return classify_stack_status(self.status)

    @property
    def is_terminal(self) -> bool:
        # REVIEW_IN_PROGRESS counts as not found but has not settled.
        if StackStatus.parse(self.status) is None:
            return False
        return not self.status.endswith("_IN_PROGRESS")

    @property
    def is_success(self) -> bool:
        return self.classification is StackStatusClass.SUCCESS

    @property
    def is_not_found(self) -> bool:
        return self.classification is StackStatusClass.NOT_FOUND

    @property
    def is_deleted(self) -> bool:
        return self.status == StackStatus.DELETE_COMPLETE.value

    @property
    def is_creation_failure(self) -> bool:
        return StackStatus.parse(self.status) in FAILED_CREATION_STATUSES

    def __str__(self) -> str:
        if self.reason:
            return f"{self.status} ({self.reason})"
        return self.status
