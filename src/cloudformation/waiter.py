"""
Polling loops that block until a stack or changeset settles.

No timeout is imposed here; an interrupt raised during the sleep simply
propagates to the caller.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from .errors import ChangeSetCreationError, StackDeletedError
from .stack import describe_stack
from .stack_status import StackState

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0

_NO_CHANGES_REASONS = (
    "The submitted information didn't contain changes.",
    "No updates are to be performed.",
)


def wait_for_stack(
    cfn: Any,
    stack_name: str,
    fail_on_deleted_stack: bool = True,
    delay: float = DEFAULT_POLL_INTERVAL,
) -> Optional[Dict[str, Any]]:
    """
    Wait for a stack to reach a terminal state.

    Args:
        cfn: CloudFormation client
        stack_name: Name of the stack to watch
        fail_on_deleted_stack: Raise if the stack disappears instead of
            returning None
        delay: Seconds between polls

    Returns:
        The last stack description (whatever its terminal status), or None
        if the stack is gone and that was acceptable.
    """
    while True:
        description = describe_stack(cfn, stack_name)
        state = StackState.from_description(description) if description else None

        if state is None or state.is_deleted:
            if fail_on_deleted_stack:
                raise StackDeletedError(
                    f"The stack named {stack_name} was deleted",
                    stack_name=stack_name,
                    status=state.status if state else None,
                )
            logger.debug(f"Stack {stack_name} no longer exists")
            return description

        if state.is_terminal:
            logger.debug(f"Stack {stack_name} reached {state}")
            return description

        logger.debug(f"Stack {stack_name} is still not stable ({state})")
        time.sleep(delay)


def describe_change_set(cfn: Any, stack_name: str, change_set_name: str) -> Dict[str, Any]:
    """Describe a changeset, collecting every page of proposed changes."""
    paginator = cfn.get_paginator("describe_change_set")

    description: Dict[str, Any] = {}
    changes: List[Dict[str, Any]] = []
    for page in paginator.paginate(StackName=stack_name, ChangeSetName=change_set_name):
        if not description:
            description = dict(page)
        changes.extend(page.get("Changes", []))

    description.pop("NextToken", None)
    description["Changes"] = changes
    return description


def change_set_has_no_changes(description: Dict[str, Any]) -> bool:
    """Whether a stabilized changeset has nothing to execute."""
    status = description.get("Status")
    if status == "FAILED":
        reason = description.get("StatusReason") or ""
        return reason.startswith(_NO_CHANGES_REASONS)
    if status == "CREATE_COMPLETE":
        return len(description.get("Changes") or []) == 0
    return False


def wait_for_change_set(
    cfn: Any,
    stack_name: str,
    change_set_name: str,
    delay: float = DEFAULT_POLL_INTERVAL,
) -> Dict[str, Any]:
    """Wait for a changeset to finish creating and return its description."""
    while True:
        description = describe_change_set(cfn, stack_name, change_set_name)
        status = description.get("Status")

        if status in ("CREATE_PENDING", "CREATE_IN_PROGRESS"):
            logger.debug(f"Changeset {change_set_name} on {stack_name} is still {status}")
            time.sleep(delay)
            continue

        if status == "CREATE_COMPLETE" or change_set_has_no_changes(description):
            return description

        raise ChangeSetCreationError(
            f"Failed to create changeset {change_set_name} on {stack_name}: "
            f"{status or 'NO_STATUS'}, "
            f"{description.get('StatusReason') or 'no reason provided'}",
            stack_name=stack_name,
            change_set_name=change_set_name,
            status=status,
        )
