"""
Read-only CloudFormation lookups.

A stack that does not exist is reported by the API as a ValidationError.
These helpers turn that into None/False/{} so callers never see it as a
failure; every other error propagates.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from .serialize import deserialize_structure
from .stack_status import StackState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployedTemplate:
    """Template currently applied to a stack."""

    stack_id: str
    template: Dict[str, Any]


def is_not_found_error(error: ClientError) -> bool:
    """Check whether a ClientError says the stack does not exist."""
    message = error.response.get("Error", {}).get("Message", "") or str(error)
    return "does not exist" in message


def describe_stack(cfn: Any, stack_name: str) -> Optional[Dict[str, Any]]:
    """Describe a stack, or return None if there is no such stack."""
    try:
        response = cfn.describe_stacks(StackName=stack_name)
    except ClientError as e:
        if is_not_found_error(e):
            return None
        raise

    stacks = response.get("Stacks") or []
    if len(stacks) != 1:
        return None
    return stacks[0]


def stack_exists(cfn: Any, stack_name: str) -> bool:
    """Whether a live stack with this name exists."""
    description = describe_stack(cfn, stack_name)
    if description is None:
        return False
    return not StackState.from_description(description).is_not_found


def stack_present(cfn: Any, stack_name: str) -> bool:
    """Whether any stack record is left to delete, placeholders included."""
    description = describe_stack(cfn, stack_name)
    if description is None:
        return False
    return not StackState.from_description(description).is_deleted


def stack_failed_creating(cfn: Any, stack_name: str) -> bool:
    """Whether the stack is stuck in a state only deletion can clear."""
    description = describe_stack(cfn, stack_name)
    if description is None:
        return False
    return StackState.from_description(description).is_creation_failure


def get_stack_outputs(cfn: Any, stack_name: str) -> Dict[str, str]:
    """Get outputs from a CloudFormation stack."""
    description = describe_stack(cfn, stack_name)
    outputs: Dict[str, str] = {}
    if description:
        for output in description.get("Outputs", []):
            outputs[output["OutputKey"]] = output["OutputValue"]
    return outputs


def read_current_template(cfn: Any, stack_name: str) -> Dict[str, Any]:
    """Get the template as originally submitted for the stack ({} if none)."""
    try:
        response = cfn.get_template(StackName=stack_name, TemplateStage="Original")
    except ClientError as e:
        if is_not_found_error(e):
            return {}
        raise
    return deserialize_structure(response.get("TemplateBody")) or {}


def get_deployed_template(cfn: Any, stack_name: str) -> Optional[DeployedTemplate]:
    """
    Get the id and template of the deployed stack, if there is one.

    A stack whose creation failed has nothing deployed; it must be
    recreated even when its template matches.
    """
    description = describe_stack(cfn, stack_name)
    if description is None:
        return None
    state = StackState.from_description(description)
    if state.is_not_found or state.is_creation_failure:
        return None

    template = read_current_template(cfn, stack_name)
    logger.debug(f"Read deployed template for {stack_name} ({description['StackId']})")
    return DeployedTemplate(stack_id=description["StackId"], template=template)
