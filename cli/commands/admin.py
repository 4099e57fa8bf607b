#!/usr/bin/env python3
"""
Owner Administration Commands for the Storefront CLI

Whitelist management, pausing, withdrawals and ownership transfer. All
write commands are sent as the --from address and are rejected unless it
owns the collection.
"""

from typing import Optional

import click

from registry.schema import normalize_address
from registry.units import format_units

from ..context import CLIContext, handle_cli_error, pass_context


@click.group()
@pass_context
def whitelist(ctx: CLIContext):
    """
    Whitelist management commands.
    """
    ctx.logger.debug("Whitelist command group invoked")


@whitelist.command('add')
@click.argument('address')
@click.option('--from', 'account', help='Owner address')
@pass_context
@handle_cli_error
def whitelist_add(ctx: CLIContext, address: str, account: Optional[str]):
    """
    Add ADDRESS to the whitelist.
    """
    owner = ctx.resolve_account(account)
    manager = ctx.open_collection()

    added = manager.add_to_whitelist(owner, address)
    ctx.output({
        'address': normalize_address(address),
        'whitelisted': True,
        'newly_added': added,
    })


@whitelist.command('check')
@click.argument('address')
@pass_context
@handle_cli_error
def whitelist_check(ctx: CLIContext, address: str):
    """
    Show whether ADDRESS is whitelisted.
    """
    manager = ctx.open_collection()
    ctx.output({
        'address': normalize_address(address),
        'whitelisted': manager.is_whitelisted(address),
    })


def _set_paused(ctx: CLIContext, account: Optional[str], paused: bool):
    owner = ctx.resolve_account(account)
    manager = ctx.open_collection()
    manager.set_paused(owner, paused)
    ctx.output({'paused': manager.paused()})


@click.command('pause')
@click.option('--from', 'account', help='Owner address')
@pass_context
@handle_cli_error
def pause(ctx: CLIContext, account: Optional[str]):
    """
    Pause minting.
    """
    _set_paused(ctx, account, True)


@click.command('unpause')
@click.option('--from', 'account', help='Owner address')
@pass_context
@handle_cli_error
def unpause(ctx: CLIContext, account: Optional[str]):
    """
    Resume minting.
    """
    _set_paused(ctx, account, False)


@click.command('withdraw')
@click.option('--from', 'account', help='Owner address')
@pass_context
@handle_cli_error
def withdraw(ctx: CLIContext, account: Optional[str]):
    """
    Withdraw the collection balance to the owner.
    """
    owner = ctx.resolve_account(account)
    manager = ctx.open_collection()

    amount = manager.withdraw(owner)
    ctx.output({
        'owner': owner,
        'withdrawn_wei': amount,
        'withdrawn_ether': format_units(amount, 'ether'),
        'contract_balance': manager.contract_balance(),
        'owner_account_balance': manager.account_balance(owner),
    })


@click.command('transfer-ownership')
@click.argument('new_owner')
@click.option('--from', 'account', help='Current owner address')
@click.option('--yes', is_flag=True, help='Skip the confirmation prompt')
@pass_context
@handle_cli_error
def transfer_ownership(ctx: CLIContext, new_owner: str, account: Optional[str], yes: bool):
    """
    Transfer collection ownership to NEW_OWNER.
    """
    owner = ctx.resolve_account(account)
    manager = ctx.open_collection()

    if not yes and not click.confirm(f"Transfer ownership to {new_owner}?", default=False):
        ctx.logger.info("Ownership transfer cancelled by user")
        return

    manager.transfer_ownership(owner, new_owner)
    ctx.output({'previous_owner': owner, 'owner': manager.owner()})
