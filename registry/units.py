"""
NFT Storefront - Currency Unit Helpers

Prices are stored as integers in the smallest currency unit (wei). These
helpers convert human readable amounts such as "10 ether" to and from wei.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from web3 import Web3


def parse_units(value: Union[str, int, float, Decimal], unit: str = 'ether') -> int:
    """
    Convert an amount expressed in ``unit`` to wei.

    Args:
        value: Decimal amount, e.g. "10" or "0.5"
        unit: Unit name (wei, gwei, ether, ...)

    Returns:
        Amount in wei

    Raises:
        ValueError: If the unit is unknown, or the amount is negative,
            malformed or has more fractional digits than the unit allows
    """
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")

    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid amount: {value!r}")

    unit = unit.lower()
    wei = Web3.to_wei(amount, unit)

    # to_wei truncates sub-wei fractions
    if Web3.from_wei(wei, unit) != amount:
        raise ValueError(f"Amount {value} {unit} is not a whole number of wei")

    return wei


def format_units(wei: int, unit: str = 'ether') -> str:
    """Render a wei amount in ``unit`` without trailing zeros."""
    amount = Decimal(Web3.from_wei(wei, unit.lower()))
    return format(amount.normalize(), 'f')


def parse_amount(text: Union[str, int]) -> int:
    """
    Parse "<number> <unit>" (e.g. "10 ether") or a bare integer in wei.
    """
    if isinstance(text, int):
        if text < 0:
            raise ValueError(f"Invalid amount: {text}")
        return text

    parts = text.split()
    if len(parts) == 1:
        return parse_units(parts[0], 'wei')
    if len(parts) == 2:
        return parse_units(parts[0], parts[1])

    raise ValueError(f"Invalid amount: {text!r}")
