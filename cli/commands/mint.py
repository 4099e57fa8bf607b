#!/usr/bin/env python3
"""
Minting Commands for the Storefront CLI
"""

from typing import Optional

import click

from registry.units import format_units, parse_amount

from ..context import CLIContext, handle_cli_error, pass_context


@click.command('mint')
@click.argument('quantity', type=int)
@click.option('--from', 'account', help='Minting address')
@click.option('--value', help='Payment to attach, e.g. "30 ether"; defaults to cost x quantity')
@click.option('--dry-run', is_flag=True, help='Check admission without minting')
@pass_context
@handle_cli_error
def mint(ctx: CLIContext, quantity: int, account: Optional[str], value: Optional[str], dry_run: bool):
    """
    Mint QUANTITY tokens.

    Examples:
        storefront mint 3 --from 0x7099...79c8
        storefront mint 1 --value "10 ether" --dry-run
    """
    minter = ctx.resolve_account(account)
    manager = ctx.open_collection()

    payment = parse_amount(value) if value is not None else manager.cost() * max(quantity, 0)

    if dry_run:
        ctx.logger.info("Dry run mode - checking admission only")
        ctx.output(manager.preview_mint(minter, quantity, payment).get_summary())
        return

    ctx.logger.info(f"Minting {quantity} token(s) to {minter} for {payment} wei")
    token_ids = manager.mint(minter, quantity, payment)

    ctx.output({
        'minter': minter,
        'token_ids': token_ids,
        'paid_wei': payment,
        'paid_ether': format_units(payment, 'ether'),
        'total_supply': manager.total_supply(),
        'balance': manager.balance_of(minter),
    })
