"""
Deploy and destroy CloudFormation stacks through changesets.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .activity_monitor import DEFAULT_MONITOR_INTERVAL, monitor_stack_activity
from .artifact import StackArtifact
from .assets import prepare_assets
from .errors import ConfigurationError, StackStateError
from .sdk import SDK, Mode
from .stack import (
    get_deployed_template,
    get_stack_outputs,
    stack_exists,
    stack_failed_creating,
    stack_present,
)
from .stack_status import StackState
from .template import make_body_parameter
from .toolkit import ToolkitInfo
from .waiter import (
    DEFAULT_POLL_INTERVAL,
    change_set_has_no_changes,
    wait_for_change_set,
    wait_for_stack,
)

logger = logging.getLogger(__name__)

# Templates may declare IAM resources or rely on macros.
CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"]

DEFAULT_CHANGE_SET_PREFIX = "StackDeploy"


class ChangeSetType(Enum):
    """Whether a changeset creates a new stack or updates an existing one."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class DeployStackOptions:
    """Everything needed to deploy one stack."""

    stack: StackArtifact
    sdk: SDK
    toolkit_info: Optional[ToolkitInfo] = None
    role_arn: Optional[str] = None
    notification_arns: Sequence[str] = ()
    deploy_name: Optional[str] = None
    quiet: bool = False
    reuse_assets: Sequence[str] = ()
    tags: Mapping[str, str] = field(default_factory=dict)
    # Leave the changeset in review instead of executing it when False.
    execute: bool = True
    # Parameters with None or empty values are not passed to the template.
    parameters: Mapping[str, Optional[str]] = field(default_factory=dict)
    # Deploy even if the deployed template is identical.
    force: bool = False
    change_set_prefix: str = DEFAULT_CHANGE_SET_PREFIX
    stack_poll_interval: float = DEFAULT_POLL_INTERVAL
    change_set_poll_interval: float = DEFAULT_POLL_INTERVAL
    monitor_poll_interval: float = DEFAULT_MONITOR_INTERVAL


@dataclass(frozen=True)
class DeployStackResult:
    """Outcome of a deployment."""

    no_op: bool
    outputs: Dict[str, str]
    stack_arn: str
    stack_artifact: StackArtifact


@dataclass(frozen=True)
class DestroyStackOptions:
    """Everything needed to destroy one stack."""

    stack: StackArtifact
    sdk: SDK
    role_arn: Optional[str] = None
    deploy_name: Optional[str] = None
    quiet: bool = False
    stack_poll_interval: float = DEFAULT_POLL_INTERVAL
    monitor_poll_interval: float = DEFAULT_MONITOR_INTERVAL


def _cloudformation_client(stack: StackArtifact, sdk: SDK) -> Any:
    if stack.environment is None:
        raise ConfigurationError(
            f"The stack {stack.display_name} does not have an environment",
            stack_name=stack.stack_name,
        )
    return sdk.cloudformation(stack.environment, Mode.FOR_WRITING)


def _template_parameters(parameters: Mapping[str, Optional[str]]) -> List[Dict[str, Any]]:
    return [
        {"ParameterKey": name, "ParameterValue": value}
        for name, value in parameters.items()
        if value
    ]


def _recover_failed_creation(cfn: Any, stack_name: str, delay: float) -> None:
    """Delete a stack that failed creation so it can be created again."""
    if not stack_failed_creating(cfn, stack_name):
        return

    logger.info(
        f"Found existing stack {stack_name} that had previously failed creation. "
        "Deleting it before attempting to re-create it."
    )
    cfn.delete_stack(StackName=stack_name)
    deleted = wait_for_stack(cfn, stack_name, fail_on_deleted_stack=False, delay=delay)
    if deleted is None:
        return

    state = StackState.from_description(deleted)
    if not state.is_deleted:
        raise StackStateError(
            f"Failed deleting stack {stack_name} that had previously failed creation "
            f"(current state: {state})",
            stack_name=stack_name,
            status=state.status,
        )


def _ensure_deployed(stack_name: str, description: Optional[Dict[str, Any]]) -> None:
    if description is None:
        return
    state = StackState.from_description(description)
    if state.is_creation_failure:
        raise StackStateError(
            f"The stack named {stack_name} failed creation, it may need to be "
            f"manually deleted from the AWS console: {state}",
            stack_name=stack_name,
            status=state.status,
        )
    if not state.is_success:
        raise StackStateError(
            f"The stack named {stack_name} is in a failed state: {state}",
            stack_name=stack_name,
            status=state.status,
        )


def deploy_stack(options: DeployStackOptions) -> DeployStackResult:
    """
    Deploy a stack by creating and executing a changeset.

    Nothing is changed when the deployed template already matches (unless
    ``force`` is set) or when the changeset turns out to be empty; the result
    then has ``no_op`` set.

    Raises:
        ConfigurationError: the stack has no environment
        TemplateTooLargeError: template over the inline limit and no bucket
        ChangeSetCreationError: the changeset could not be created
        StackStateError: the stack ended in an unexpected terminal state
    """
    stack = options.stack
    cfn = _cloudformation_client(stack, options.sdk)
    deploy_name = options.deploy_name or stack.stack_name

    if not options.force:
        logger.debug(
            "checking if we can skip this stack based on the currently deployed template "
            "(use --force to override)"
        )
        deployed = get_deployed_template(cfn, deploy_name)
        # Deserialized documents, so key order and formatting do not count.
        if deployed is not None and stack.template == deployed.template:
            logger.debug(f"{deploy_name}: no change in template, skipping (use --force to override)")
            return DeployStackResult(
                no_op=True,
                outputs=get_stack_outputs(cfn, deploy_name),
                stack_arn=deployed.stack_id,
                stack_artifact=stack,
            )
        logger.debug(f"{deploy_name}: template changed, deploying...")

    params = prepare_assets(stack, options.toolkit_info, options.reuse_assets)
    params.extend(_template_parameters(options.parameters))

    body_parameter = make_body_parameter(stack, options.toolkit_info)

    _recover_failed_creation(cfn, deploy_name, options.stack_poll_interval)

    change_set_type = ChangeSetType.UPDATE if stack_exists(cfn, deploy_name) else ChangeSetType.CREATE
    execution_id = str(uuid.uuid4())
    change_set_name = f"{options.change_set_prefix}-{execution_id}"

    logger.debug(
        f"Attempting to create changeset {change_set_name} to "
        f"{change_set_type.value.lower()} stack {deploy_name}"
    )
    logger.info(f"{deploy_name}: creating CloudFormation changeset...")

    request: Dict[str, Any] = {
        "StackName": deploy_name,
        "ChangeSetName": change_set_name,
        "ChangeSetType": change_set_type.value,
        "Description": f"Changeset for execution {execution_id}",
        "Parameters": params,
        "Capabilities": CAPABILITIES,
        "Tags": [{"Key": key, "Value": value} for key, value in options.tags.items()],
        **body_parameter.to_api_kwargs(),
    }
    if options.role_arn:
        request["RoleARN"] = options.role_arn
    if options.notification_arns:
        request["NotificationARNs"] = list(options.notification_arns)

    change_set = cfn.create_change_set(**request)
    logger.debug(f"Initiated creation of changeset: {change_set['Id']}; waiting for it to finish creating...")
    description = wait_for_change_set(
        cfn, deploy_name, change_set_name, delay=options.change_set_poll_interval
    )

    if change_set_has_no_changes(description):
        logger.debug(f"No changes are to be performed on {deploy_name}.")
        cfn.delete_change_set(StackName=deploy_name, ChangeSetName=change_set_name)
        return DeployStackResult(
            no_op=True,
            outputs=get_stack_outputs(cfn, deploy_name),
            stack_arn=change_set["StackId"],
            stack_artifact=stack,
        )

    if options.execute:
        # Plus one for the stack itself.
        resources_total = len(description.get("Changes") or []) + 1
        with monitor_stack_activity(
            cfn,
            deploy_name,
            quiet=options.quiet,
            resources_total=resources_total,
            poll_interval=options.monitor_poll_interval,
        ):
            logger.debug(f"Initiating execution of changeset {change_set_name} on stack {deploy_name}")
            cfn.execute_change_set(StackName=deploy_name, ChangeSetName=change_set_name)
            logger.debug(
                f"Execution of changeset {change_set_name} on stack {deploy_name} has started; "
                "waiting for the update to complete..."
            )
            final = wait_for_stack(cfn, deploy_name, delay=options.stack_poll_interval)
        _ensure_deployed(deploy_name, final)
        logger.debug(f"Stack {deploy_name} has completed updating")
    else:
        logger.info(
            f"Changeset {change_set_name} created and waiting in review for manual execution (--no-execute)"
        )

    return DeployStackResult(
        no_op=False,
        outputs=get_stack_outputs(cfn, deploy_name),
        stack_arn=change_set["StackId"],
        stack_artifact=stack,
    )


def destroy_stack(options: DestroyStackOptions) -> None:
    """
    Delete a stack and wait until it is gone.

    Destroying a stack that does not exist does nothing.

    Raises:
        ConfigurationError: the stack has no environment
        StackStateError: the stack did not end up deleted
    """
    stack = options.stack
    cfn = _cloudformation_client(stack, options.sdk)
    deploy_name = options.deploy_name or stack.stack_name

    if not stack_present(cfn, deploy_name):
        logger.debug(f"Stack {deploy_name} does not exist, nothing to destroy")
        return

    with monitor_stack_activity(
        cfn, deploy_name, quiet=options.quiet, poll_interval=options.monitor_poll_interval
    ):
        request = {"StackName": deploy_name}
        if options.role_arn:
            request["RoleARN"] = options.role_arn
        cfn.delete_stack(**request)
        destroyed = wait_for_stack(
            cfn, deploy_name, fail_on_deleted_stack=False, delay=options.stack_poll_interval
        )

    if destroyed is not None:
        state = StackState.from_description(destroyed)
        if not state.is_deleted:
            raise StackStateError(
                f"Failed to destroy {deploy_name}: {state}",
                stack_name=deploy_name,
                status=state.status,
            )
