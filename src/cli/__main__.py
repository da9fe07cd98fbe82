#!/usr/bin/env python3
"""Main CLI entry point for stack deployments."""

import logging
import sys
from typing import Optional

import click

from cloudformation import ConfigurationError
from config import get_config

from .cloudformation import bootstrap, deploy, destroy, status


@click.group()
@click.version_option(package_name="cfn-stack-deploy")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), help="Configuration file (default: ./stackdeploy.yaml)")
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], verbose: bool) -> None:
    """Deploy and destroy CloudFormation stacks through changesets."""
    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    logging.getLogger("cloudformation").setLevel(logging.DEBUG if verbose else logging.INFO)

    try:
        ctx.obj = {"config": get_config(config_file)}
    except ConfigurationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)


cli.add_command(deploy)
cli.add_command(destroy)
cli.add_command(status)
cli.add_command(bootstrap)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
