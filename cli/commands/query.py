#!/usr/bin/env python3
"""
Token Query Commands for the Storefront CLI
"""

import click

from ..context import CLIContext, handle_cli_error, pass_context


def image_url(gateway: str, token_id: int) -> str:
    """Image location of a token on the configured gateway."""
    return f"{gateway}{token_id}.png"


@click.command('owner-of')
@click.argument('token_id', type=int)
@pass_context
@handle_cli_error
def owner_of(ctx: CLIContext, token_id: int):
    """
    Show the owner of TOKEN_ID.
    """
    manager = ctx.open_collection()
    ctx.output({'token_id': token_id, 'owner': manager.owner_of(token_id)})


@click.command('token-uri')
@click.argument('token_id', type=int)
@pass_context
@handle_cli_error
def token_uri(ctx: CLIContext, token_id: int):
    """
    Show the metadata URI of TOKEN_ID.
    """
    manager = ctx.open_collection()
    ctx.output({'token_id': token_id, 'token_uri': manager.token_uri(token_id)})


@click.command('wallet')
@click.argument('address')
@pass_context
@handle_cli_error
def wallet(ctx: CLIContext, address: str):
    """
    List the tokens owned by ADDRESS with their metadata and image locations.
    """
    manager = ctx.open_collection()
    gateway = ctx.get_config('storefront.image_gateway')

    ctx.output([
        {
            'token_id': token_id,
            'token_uri': manager.token_uri(token_id),
            'image': image_url(gateway, token_id) if gateway else None,
        }
        for token_id in manager.wallet_of_owner(address)
    ])


@click.command('balance')
@click.argument('address')
@pass_context
@handle_cli_error
def balance(ctx: CLIContext, address: str):
    """
    Show the token count and withdrawn funds of ADDRESS.
    """
    manager = ctx.open_collection()
    ctx.output({
        'address': address.lower(),
        'tokens': manager.balance_of(address),
        'account_balance_wei': manager.account_balance(address),
    })
