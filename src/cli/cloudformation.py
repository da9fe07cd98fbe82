#!/usr/bin/env python3
"""
Stack deployment CLI commands.
"""

import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional, Tuple

import click
from botocore.exceptions import BotoCoreError, ClientError

from cloudformation import (
    SDK,
    Environment,
    Mode,
    StackArtifact,
    StackDeployError,
    StackState,
    ToolkitInfo,
    bootstrap_environment,
    deploy_stack,
    destroy_stack,
)
from cloudformation.artifact import UNKNOWN_ACCOUNT, UNKNOWN_REGION
from cloudformation.deploy_stack import DeployStackOptions, DestroyStackOptions
from cloudformation.stack import describe_stack, get_stack_outputs
from config import DeployConfig, StackConfig

DEPLOY_ERRORS = (StackDeployError, ClientError, BotoCoreError)


def _fail(error: Exception) -> NoReturn:
    click.echo(f"❌ {error}", err=True)
    sys.exit(1)


def _parse_pairs(values: Tuple[str, ...], option: str) -> Dict[str, str]:
    """Parse repeated KEY=VALUE options."""
    pairs: Dict[str, str] = {}
    for item in values:
        if "=" not in item:
            raise click.BadParameter(f"expected KEY=VALUE, got '{item}'", param_hint=option)
        key, value = item.split("=", 1)
        pairs[key] = value
    return pairs


def _make_sdk(config: DeployConfig, profile: Optional[str], region: Optional[str]) -> SDK:
    return SDK(profile=profile or config.profile, region=region or config.region)


def _environment(
    config: DeployConfig,
    stack_config: Optional[StackConfig],
    account: Optional[str],
    region: Optional[str],
) -> Environment:
    if stack_config is not None:
        environment = stack_config.environment(config.region)
    else:
        environment = Environment(region=config.region or UNKNOWN_REGION)
    return Environment(
        account=account or environment.account or UNKNOWN_ACCOUNT,
        region=region or environment.region,
    )


def _lookup_stack_config(config: DeployConfig, stack: str, template: Optional[str]) -> StackConfig:
    """Configured stack settings, or ad hoc ones built around --template."""
    if stack in config.stacks:
        stack_config = config.get_stack(stack)
        if template is not None:
            stack_config = replace(stack_config, template=str(Path(template).resolve()))
        return stack_config
    if template is None:
        raise click.UsageError(
            f"Stack '{stack}' is not configured; pass --template to deploy it ad hoc"
        )
    return StackConfig(name=stack, template=str(Path(template).resolve()))


def _toolkit_info(
    sdk: SDK, config: DeployConfig, environment: Environment, toolkit_bucket: Optional[str]
) -> Optional[ToolkitInfo]:
    s3 = sdk.s3(environment, Mode.FOR_WRITING)
    bucket = toolkit_bucket or config.toolkit_bucket
    if bucket:
        region = environment.region
        if region == UNKNOWN_REGION:
            # Fall back to the region the session resolved for the client.
            region = s3.meta.region_name
        return ToolkitInfo.from_bucket(s3, bucket, region)
    cfn = sdk.cloudformation(environment, Mode.FOR_READING)
    return ToolkitInfo.lookup(cfn, s3, config.toolkit_stack_name)


def _print_outputs(outputs: Dict[str, Any]) -> None:
    if outputs:
        click.echo("\nOutputs:")
        for key, value in outputs.items():
            click.echo(f"  {key}: {value}")


@click.command()
@click.argument("stack")
@click.option("--template", "-t", type=click.Path(exists=True, dir_okay=False), help="Template file (overrides config)")
@click.option("--stack-name", "-s", help="Name of the deployed stack (defaults to STACK)")
@click.option("--account", help="AWS account the stack belongs to")
@click.option("--region", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.option("--role-arn", help="Role CloudFormation assumes for the deployment")
@click.option("--notification-arn", multiple=True, help="SNS topic for stack events")
@click.option("--parameter", "-P", multiple=True, help="Template parameter (KEY=VALUE)")
@click.option("--tag", "-T", multiple=True, help="Stack tag (KEY=VALUE)")
@click.option("--toolkit-bucket", help="S3 bucket for templates and assets")
@click.option("--reuse-asset", multiple=True, help="Keep the deployed value of an asset")
@click.option("--force", "-f", is_flag=True, help="Deploy even if the template is unchanged")
@click.option("--execute/--no-execute", default=True, help="Execute the changeset or leave it for review")
@click.option("--quiet", "-q", is_flag=True, help="Do not stream stack events")
@click.pass_obj
def deploy(
    obj: Dict[str, Any],
    stack: str,
    template: Optional[str],
    stack_name: Optional[str],
    account: Optional[str],
    region: Optional[str],
    profile: Optional[str],
    role_arn: Optional[str],
    notification_arn: Tuple[str, ...],
    parameter: Tuple[str, ...],
    tag: Tuple[str, ...],
    toolkit_bucket: Optional[str],
    reuse_asset: Tuple[str, ...],
    force: bool,
    execute: bool,
    quiet: bool,
) -> None:
    """Deploy STACK through a CloudFormation changeset."""
    config: DeployConfig = obj["config"]
    stack_config = _lookup_stack_config(config, stack, template)
    parameters = _parse_pairs(parameter, "--parameter")
    tags = _parse_pairs(tag, "--tag")

    try:
        environment = _environment(config, stack_config, account, region)
        artifact = stack_config.to_artifact(config.base_dir, config.region)
        artifact = replace(
            artifact,
            stack_name=stack_name or artifact.stack_name,
            environment=environment,
            display_name=None,
        )

        sdk = _make_sdk(config, profile, region)
        options = DeployStackOptions(
            stack=artifact,
            sdk=sdk,
            toolkit_info=_toolkit_info(sdk, config, environment, toolkit_bucket),
            role_arn=role_arn or stack_config.role_arn,
            notification_arns=notification_arn or stack_config.notification_arns,
            quiet=quiet,
            reuse_assets=reuse_asset,
            tags={**config.tags, **stack_config.tags, **tags},
            execute=execute,
            parameters={**stack_config.parameters, **parameters},
            force=force,
            change_set_prefix=config.change_set_prefix,
            **config.poll_intervals(),
        )

        click.echo(f"🚀 {artifact.display_name}: deploying...")
        result = deploy_stack(options)
    except DEPLOY_ERRORS as e:
        _fail(e)

    if result.no_op:
        click.echo(f"✅ {artifact.display_name} (no changes)")
    elif not execute:
        click.echo(f"📝 {artifact.display_name}: changeset created and waiting for review")
    else:
        click.echo(f"✅ {artifact.display_name}")

    _print_outputs(result.outputs)
    click.echo(f"\nStack ARN:\n{result.stack_arn}")


@click.command()
@click.argument("stack")
@click.option("--stack-name", "-s", help="Name of the deployed stack (defaults to STACK)")
@click.option("--account", help="AWS account the stack belongs to")
@click.option("--region", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.option("--role-arn", help="Role CloudFormation assumes for the deletion")
@click.option("--quiet", "-q", is_flag=True, help="Do not stream stack events")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def destroy(
    obj: Dict[str, Any],
    stack: str,
    stack_name: Optional[str],
    account: Optional[str],
    region: Optional[str],
    profile: Optional[str],
    role_arn: Optional[str],
    quiet: bool,
    yes: bool,
) -> None:
    """Delete STACK and wait until it is gone."""
    config: DeployConfig = obj["config"]
    stack_config = config.stacks.get(stack)
    name = stack_name or (stack_config.get_stack_name() if stack_config else stack)

    if not yes:
        click.confirm(f"Are you sure you want to delete: {name}?", abort=True)

    try:
        artifact = StackArtifact(
            id=stack,
            stack_name=name,
            template={},
            environment=_environment(config, stack_config, account, region),
        )
        click.echo(f"🗑️  {name}: destroying...")
        destroy_stack(
            DestroyStackOptions(
                stack=artifact,
                sdk=_make_sdk(config, profile, region),
                role_arn=role_arn or (stack_config.role_arn if stack_config else None),
                quiet=quiet,
                stack_poll_interval=config.stack_poll_interval,
                monitor_poll_interval=config.monitor_poll_interval,
            )
        )
    except DEPLOY_ERRORS as e:
        _fail(e)

    click.echo(f"✅ {name}: destroyed")


@click.command()
@click.argument("stack")
@click.option("--stack-name", "-s", help="Name of the deployed stack (defaults to STACK)")
@click.option("--account", help="AWS account the stack belongs to")
@click.option("--region", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.pass_obj
def status(
    obj: Dict[str, Any],
    stack: str,
    stack_name: Optional[str],
    account: Optional[str],
    region: Optional[str],
    profile: Optional[str],
) -> None:
    """Show the status and outputs of STACK."""
    config: DeployConfig = obj["config"]
    stack_config = config.stacks.get(stack)
    name = stack_name or (stack_config.get_stack_name() if stack_config else stack)

    try:
        environment = _environment(config, stack_config, account, region)
        cfn = _make_sdk(config, profile, region).cloudformation(environment)
        description = describe_stack(cfn, name)
        if description is None:
            click.echo(f"Stack {name} does not exist")
            return

        state = StackState.from_description(description)
        outputs = get_stack_outputs(cfn, name)
    except DEPLOY_ERRORS as e:
        _fail(e)

    color = {"success": "green", "failure": "red"}.get(state.classification.value, "yellow")
    click.echo(f"Stack: {name}")
    click.echo(f"Status: {click.style(str(state), fg=color)}")
    click.echo(f"Stack ARN: {description['StackId']}")
    _print_outputs(outputs)


@click.command()
@click.option("--account", help="AWS account to bootstrap")
@click.option("--region", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.option("--toolkit-stack-name", help="Name of the toolkit stack")
@click.option("--bucket-name", help="Explicit name for the template bucket")
@click.option("--role-arn", help="Role CloudFormation assumes for the deployment")
@click.option("--quiet", "-q", is_flag=True, help="Do not stream stack events")
@click.pass_obj
def bootstrap(
    obj: Dict[str, Any],
    account: Optional[str],
    region: Optional[str],
    profile: Optional[str],
    toolkit_stack_name: Optional[str],
    bucket_name: Optional[str],
    role_arn: Optional[str],
    quiet: bool,
) -> None:
    """Deploy the bucket used for large templates and assets."""
    config: DeployConfig = obj["config"]
    name = toolkit_stack_name or config.toolkit_stack_name

    try:
        environment = _environment(config, None, account, region)
        click.echo(f"⏳ Bootstrapping {environment.name} ({name})...")
        result = bootstrap_environment(
            environment,
            _make_sdk(config, profile, region),
            toolkit_stack_name=name,
            bucket_name=bucket_name,
            role_arn=role_arn,
            quiet=quiet,
            **config.poll_intervals(),
        )
    except DEPLOY_ERRORS as e:
        _fail(e)

    if result.no_op:
        click.echo(f"✅ {name} (no changes)")
    else:
        click.echo(f"✅ {name}")
    _print_outputs(result.outputs)
