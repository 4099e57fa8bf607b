#!/usr/bin/env python3
"""
Configuration Management Commands for the Storefront CLI

Generate, inspect and validate storefront configuration files.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from ..config import ENV_PREFIX, PROFILES, default_config, write_config_file
from ..context import CLIContext, handle_cli_error, pass_context


@click.group()
@pass_context
def config(ctx: CLIContext):
    """
    Configuration management commands.
    """
    ctx.logger.debug("Config command group invoked")


@config.command('init')
@click.option('--profile', 'init_profile', type=click.Choice(sorted(PROFILES)),
              help='Profile to apply on top of the defaults')
@click.option('--output', type=click.Path(dir_okay=False), help='Output file path')
@click.option('--format', 'file_format', type=click.Choice(['yaml', 'json']),
              default='yaml', help='Configuration file format')
@click.option('--force', is_flag=True, help='Overwrite existing configuration')
@pass_context
@handle_cli_error
def init_config(ctx: CLIContext, init_profile: Optional[str], output: Optional[str],
                file_format: str, force: bool):
    """
    Generate a default configuration file.

    Examples:
        storefront config init
        storefront config init --profile development --output dev.yml
    """
    if not output:
        output = '.storefront.yml' if file_format == 'yaml' else '.storefront.json'

    output_path = Path(output)
    if output_path.exists() and not force:
        raise click.ClickException(f"Configuration file already exists: {output}. Use --force to overwrite.")

    if init_profile:
        ctx.logger.info(f"Applying profile: {init_profile}")
    saved = write_config_file(default_config(init_profile), output_path, file_format)

    click.echo(f"Configuration file created: {saved}")
    click.echo(f"Override settings with {ENV_PREFIX}<SECTION>__<KEY> environment variables")


@config.command('show')
@click.option('--key', help='Specific configuration key to show (dot notation)')
@click.option('--sources', is_flag=True, help='Show configuration sources')
@pass_context
@handle_cli_error
def show_config(ctx: CLIContext, key: Optional[str], sources: bool):
    """
    Display the merged configuration.

    Examples:
        storefront config show
        storefront config show --key collection.cost
        storefront config show --sources
    """
    manager = ctx.config_manager

    if sources:
        for i, source in enumerate(manager.get_sources(), 1):
            click.echo(f"{i}. {source}")
        return

    if key:
        value = manager.get(key)
        if value is None:
            raise click.ClickException(f"Configuration key not found: {key}")
        ctx.output(value if isinstance(value, dict) else {key: value})
    else:
        ctx.output(manager.load(), 'yaml')


@config.command('validate')
@pass_context
@handle_cli_error
def validate_config(ctx: CLIContext):
    """
    Validate configuration values.
    """
    ctx.logger.info("Validating configuration")

    errors = ctx.config_manager.validate()
    if errors:
        click.echo("Configuration validation failed:")
        for error in errors:
            click.echo(f"  - {error}")
        sys.exit(1)

    click.echo("Configuration is valid")
