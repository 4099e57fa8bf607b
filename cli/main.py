#!/usr/bin/env python3
"""
NFT Storefront - Command Line Interface

Deploy a collection, mint tokens, administer the whitelist and treasury,
and query ownership from the command line.
"""

from typing import Optional

import click

from cli import __version__
from cli.commands.admin import pause, transfer_ownership, unpause, whitelist, withdraw
from cli.commands.collection import deploy, events, info
from cli.commands.config import config
from cli.commands.mint import mint
from cli.commands.query import balance, owner_of, token_uri, wallet
from cli.context import CLIContext, pass_context
from cli.output import OUTPUT_FORMATS


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              help='Path to configuration file (YAML or JSON)')
@click.option('--profile',
              help='Configuration profile (production, development)')
@click.option('--output-format', '-o',
              type=click.Choice(OUTPUT_FORMATS),
              help='Output format')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.option('--data-dir',
              type=click.Path(file_okay=False),
              help='Directory holding the collection state')
@click.version_option(__version__, prog_name='storefront')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        output_format: Optional[str], verbose: int, data_dir: Optional[str]):
    """
    NFT Storefront Command Line Interface

    Deploy a fixed-supply collection and sell tokens to whitelisted buyers
    once the mint date has passed.

    Examples:
        storefront deploy --from 0xf39f...2266
        storefront whitelist add 0x7099...79c8 --from 0xf39f...2266
        storefront mint 3 --from 0x7099...79c8
        storefront wallet 0x7099...79c8
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.output_format = output_format
    ctx.verbose = verbose
    ctx.data_dir = data_dir

    try:
        ctx.load_config()
    except (FileNotFoundError, ValueError) as e:
        raise click.UsageError(str(e))

    # Logging level may come from the configuration file
    ctx.setup_logging()

    ctx.logger.debug("CLI initialized with context")


cli.add_command(deploy)
cli.add_command(info)
cli.add_command(events)
cli.add_command(mint)
cli.add_command(whitelist)
cli.add_command(pause)
cli.add_command(unpause)
cli.add_command(withdraw)
cli.add_command(transfer_ownership)
cli.add_command(owner_of)
cli.add_command(token_uri)
cli.add_command(wallet)
cli.add_command(balance)
cli.add_command(config)


def main():
    cli()


if __name__ == '__main__':
    main()
