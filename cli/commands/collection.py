#!/usr/bin/env python3
"""
Collection Deployment and Overview Commands for the Storefront CLI

Deploy a collection from configured parameters, read back its state and
inspect its event log.
"""

import time
from datetime import datetime, timezone
from typing import Optional

import click

from registry.manager import CollectionManager
from registry.schema import CollectionConfig, EventType
from registry.units import format_units, parse_amount

from ..context import CLIContext, handle_cli_error, pass_context


@click.command('deploy')
@click.option('--name', help='Collection name')
@click.option('--symbol', help='Collection symbol')
@click.option('--cost', help='Price per token, e.g. "10 ether" or a wei amount')
@click.option('--max-supply', type=int, help='Maximum number of tokens')
@click.option('--max-mint-amount', type=int, help='Maximum tokens per mint transaction')
@click.option('--mint-delay', type=int, help='Seconds from now until minting opens')
@click.option('--mint-date', type=int, help='Unix timestamp when minting opens (overrides --mint-delay)')
@click.option('--base-uri', help="Metadata URI prefix ending in '/'")
@click.option('--from', 'account', help='Deployer address; becomes the collection owner')
@click.option('--force', is_flag=True, help='Replace an existing collection in the data directory')
@pass_context
@handle_cli_error
def deploy(ctx: CLIContext, name: Optional[str], symbol: Optional[str], cost: Optional[str],
           max_supply: Optional[int], max_mint_amount: Optional[int], mint_delay: Optional[int],
           mint_date: Optional[int], base_uri: Optional[str], account: Optional[str], force: bool):
    """
    Deploy a new collection.

    Unset options fall back to the `collection` configuration section.

    Examples:
        storefront deploy --from 0xf39f...2266
        storefront deploy --cost "10 ether" --max-supply 25 --mint-delay 60 --from 0xf39f...2266
    """
    defaults = ctx.get_config('collection', {})
    deployer = ctx.resolve_account(account)

    cost_wei = parse_amount(cost if cost is not None else defaults['cost'])
    if mint_date is None:
        delay = mint_delay if mint_delay is not None else defaults.get('mint_delay', 0)
        mint_date = int(time.time()) + int(delay)

    config = CollectionConfig(
        name=name or defaults['name'],
        symbol=symbol or defaults['symbol'],
        cost=cost_wei,
        max_supply=max_supply if max_supply is not None else defaults['max_supply'],
        max_mint_amount=(max_mint_amount if max_mint_amount is not None
                         else defaults.get('max_mint_amount', 5)),
        allow_minting_on=mint_date,
        base_uri=base_uri or defaults['base_uri'],
    )

    ctx.logger.info(f"NFT Mint Date (Unix Timestamp): {config.allow_minting_on}")
    ctx.logger.info(f"Minting cost (in wei): {config.cost}")

    data_dir = ctx.get_data_dir()
    CollectionManager.deploy(config, deployer, storage_dir=data_dir, overwrite=force)

    # Read back from storage to confirm what was persisted
    deployed = ctx.open_collection()

    ctx.output({
        'name': deployed.name(),
        'symbol': deployed.symbol(),
        'owner': deployed.owner(),
        'cost_wei': deployed.cost(),
        'cost_ether': format_units(deployed.cost(), 'ether'),
        'max_supply': deployed.max_supply(),
        'max_mint_amount': deployed.max_mint_amount(),
        'allow_minting_on': deployed.allow_minting_on(),
        'mint_date': datetime.fromtimestamp(deployed.allow_minting_on(), tz=timezone.utc),
        'base_uri': deployed.base_uri(),
        'data_dir': str(data_dir),
    })


@click.command('info')
@click.option('--from', 'account', help='Also show holdings and permissions of this address')
@pass_context
@handle_cli_error
def info(ctx: CLIContext, account: Optional[str]):
    """
    Show collection supply, price, mint window and balance.
    """
    manager = ctx.open_collection()
    data = manager.get_info()
    data['cost_ether'] = format_units(data['cost'], 'ether')

    account = account or ctx.get_config('storefront.account')
    if account:
        connected = manager.connect(account)
        data.update({
            'account': connected.account,
            'account_tokens': connected.balance(),
            'account_wallet': connected.wallet(),
            'account_is_owner': connected.is_owner(),
            'account_whitelisted': manager.is_whitelisted(connected.account),
        })

    ctx.output(data)


@click.command('events')
@click.option('--type', 'event_type', type=click.Choice([e.value for e in EventType]),
              help='Only show events of this type')
@pass_context
@handle_cli_error
def events(ctx: CLIContext, event_type: Optional[str]):
    """
    List the collection event log.
    """
    manager = ctx.open_collection()
    selected = EventType(event_type) if event_type else None

    ctx.output([
        {
            'sequence': event.sequence,
            'event': event.event.value,
            'args': event.args,
            'timestamp': event.timestamp,
        }
        for event in manager.events(selected)
    ])
