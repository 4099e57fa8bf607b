"""
Storefront Admission Module

This module decides whether a mint attempt is accepted, running the
ordered rule chain over a snapshot of collection state.
"""

from .core import (
    AdmissionChecker,
    AdmissionContext,
    AdmissionRule,
    AdmissionResult,
    create_default_checker
)

from .rules import (
    PauseRule,
    MintWindowRule,
    MintQuantityRule,
    SupplyLimitRule,
    PaymentRule,
    WhitelistRule
)

__all__ = [
    "AdmissionChecker",
    "AdmissionContext",
    "AdmissionRule",
    "AdmissionResult",
    "create_default_checker",
    "PauseRule",
    "MintWindowRule",
    "MintQuantityRule",
    "SupplyLimitRule",
    "PaymentRule",
    "WhitelistRule"
]
