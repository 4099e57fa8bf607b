"""
Storefront Admission Rules Module

This module contains the concrete admission rules applied, in order,
before a mint is accepted: pause flag, mint window, quantity bounds,
supply cap, payment and whitelist membership.
"""

from .schedule import PauseRule, MintWindowRule
from .mint_limits import MintQuantityRule
from .supply_limit import SupplyLimitRule
from .payment import PaymentRule
from .allowlist import WhitelistRule

__all__ = [
    "PauseRule",
    "MintWindowRule",
    "MintQuantityRule",
    "SupplyLimitRule",
    "PaymentRule",
    "WhitelistRule"
]
