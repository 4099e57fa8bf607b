"""
NFT Storefront Admission Core

This module provides the AdmissionChecker that decides whether a mint
attempt may proceed. The checker runs an ordered chain of rules over an
immutable snapshot of collection state:

- pause flag
- mint window opening time
- per-transaction quantity bounds
- supply cap
- payment
- whitelist membership

The first failing rule determines the rejection, so the reported reason
is deterministic for any given state and request.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from registry.exceptions import AdmissionError
from registry.schema import Collection, normalize_address


class AdmissionResult(Enum):
    """Admission result codes."""
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class AdmissionContext:
    """
    Snapshot passed between admission rules.

    Holds the request (caller, quantity, payment, time) and the collection
    state the rules read. Rules never mutate collection state.
    """
    # Request
    caller: str
    quantity: int
    payment: int
    timestamp: int

    # Collection state
    paused: bool = False
    allow_minting_on: int = 0
    total_minted: int = 0
    max_supply: int = 0
    cost: int = 0
    max_mint_amount: int = 0
    whitelisted: bool = False

    # Evaluation state
    rule_results: Dict[str, bool] = field(default_factory=dict)
    rejection: Optional[AdmissionError] = None
    rejected_by: Optional[str] = None

    @classmethod
    def from_collection(cls, collection: Collection, caller: str, quantity: int,
                        payment: int, timestamp: int) -> "AdmissionContext":
        """Build a context from the current collection state."""
        caller = normalize_address(caller)
        config = collection.config

        return cls(
            caller=caller,
            quantity=quantity,
            payment=payment,
            timestamp=timestamp,
            paused=collection.paused,
            allow_minting_on=config.allow_minting_on,
            total_minted=collection.total_minted,
            max_supply=config.max_supply,
            cost=config.cost,
            max_mint_amount=config.max_mint_amount,
            whitelisted=caller in collection.whitelist,
        )

    @property
    def required_payment(self) -> int:
        return self.cost * max(self.quantity, 0)

    def reject(self, rule_name: str, error: AdmissionError):
        """Record the rejection raised by a rule."""
        self.rule_results[rule_name] = False
        if self.rejection is None:
            self.rejection = error
            self.rejected_by = rule_name

    def mark_rule_passed(self, rule_name: str):
        self.rule_results[rule_name] = True

    def is_rejected(self) -> bool:
        return self.rejection is not None

    def get_summary(self) -> Dict[str, Any]:
        """Get admission summary."""
        return {
            "caller": self.caller,
            "quantity": self.quantity,
            "payment": self.payment,
            "required_payment": self.required_payment,
            "timestamp": self.timestamp,
            "result": (AdmissionResult.REJECTED if self.is_rejected() else AdmissionResult.APPROVED).value,
            "rejected_by": self.rejected_by,
            "reason": str(self.rejection) if self.rejection else None,
            "code": self.rejection.code if self.rejection else None,
            "rules_passed": sum(1 for passed in self.rule_results.values() if passed),
            "rules_total": len(self.rule_results),
        }


class AdmissionRule(ABC):
    """
    Abstract base class for admission rules.

    Each rule checks one predicate over the context and, on failure,
    records the specific AdmissionError describing why.
    """

    def __init__(self, name: str, description: str, enabled: bool = True):
        self.name = name
        self.description = description
        self.enabled = enabled
        self.logger = logging.getLogger(f"admission.rules.{name}")
        self.stats = {
            "validations_performed": 0,
            "approved": 0,
            "rejected": 0,
        }

    @abstractmethod
    def validate(self, context: AdmissionContext) -> bool:
        """
        Check the context.

        Args:
            context: Admission context

        Returns:
            True if the rule passes, False after recording a rejection
        """
        pass

    def is_applicable(self, context: AdmissionContext) -> bool:
        return self.enabled

    def _pass(self, context: AdmissionContext) -> bool:
        self.stats["approved"] += 1
        context.mark_rule_passed(self.name)
        return True

    def _fail(self, context: AdmissionContext, error: AdmissionError) -> bool:
        self.stats["rejected"] += 1
        context.reject(self.name, error)
        self.logger.debug(f"Rule {self.name} rejected {context.caller}: {error}")
        return False


class AdmissionChecker:
    """
    Runs admission rules in registration order and stops at the first failure.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the admission checker.

        Args:
            config: Configuration dictionary. ``require_whitelist`` (default
                True) enables whitelist gating.
        """
        self.config = dict(config or {})
        self.config.setdefault("require_whitelist", True)
        self.logger = logging.getLogger("admission.checker")

        self.rules: List[AdmissionRule] = []
        self.rule_registry: Dict[str, AdmissionRule] = {}

        self.stats = {
            "total_checks": 0,
            "approved_checks": 0,
            "rejected_checks": 0,
        }

        self._register_default_rules()

    def _register_default_rules(self):
        """Register the default rule chain in check order."""
        from .rules.schedule import PauseRule, MintWindowRule
        from .rules.mint_limits import MintQuantityRule
        from .rules.supply_limit import SupplyLimitRule
        from .rules.payment import PaymentRule
        from .rules.allowlist import WhitelistRule

        self.register_rule(PauseRule())
        self.register_rule(MintWindowRule())
        self.register_rule(MintQuantityRule())
        self.register_rule(SupplyLimitRule())
        self.register_rule(PaymentRule())
        self.register_rule(WhitelistRule(enabled=bool(self.config["require_whitelist"])))

    def register_rule(self, rule: AdmissionRule):
        """Append a rule to the chain, replacing any rule of the same name in place."""
        if rule.name in self.rule_registry:
            self.logger.warning(f"Rule {rule.name} already registered, replacing")
            index = self.rules.index(self.rule_registry[rule.name])
            self.rules[index] = rule
        else:
            self.rules.append(rule)

        self.rule_registry[rule.name] = rule
        self.logger.debug(f"Registered admission rule: {rule.name}")

    def unregister_rule(self, rule_name: str) -> bool:
        rule = self.rule_registry.pop(rule_name, None)
        if rule is None:
            return False

        self.rules.remove(rule)
        self.logger.info(f"Unregistered admission rule: {rule_name}")
        return True

    def evaluate(self, context: AdmissionContext) -> AdmissionContext:
        """
        Run the rule chain without raising.

        Returns:
            The context, with ``rejection`` set if a rule failed
        """
        self.stats["total_checks"] += 1

        for rule in self.rules:
            if not rule.is_applicable(context):
                self.logger.debug(f"Skipping rule {rule.name} - not applicable")
                continue

            rule.stats["validations_performed"] += 1
            if not rule.validate(context):
                break

        if context.is_rejected():
            self.stats["rejected_checks"] += 1
            self.logger.info(
                f"Mint of {context.quantity} by {context.caller} rejected by "
                f"{context.rejected_by}: {context.rejection}"
            )
        else:
            self.stats["approved_checks"] += 1
            self.logger.debug(f"Mint of {context.quantity} by {context.caller} admitted")

        return context

    def check(self, context: AdmissionContext) -> AdmissionContext:
        """
        Run the rule chain and raise the first rejection.

        Raises:
            AdmissionError: The specific rejection of the first failing rule
        """
        self.evaluate(context)
        if context.rejection is not None:
            raise context.rejection
        return context

    def get_statistics(self) -> Dict[str, Any]:
        return {
            **self.stats,
            "registered_rules": [rule.name for rule in self.rules],
            "rule_stats": {rule.name: dict(rule.stats) for rule in self.rules},
        }


def create_default_checker(config: Optional[Dict[str, Any]] = None) -> AdmissionChecker:
    """Create an AdmissionChecker with default configuration."""
    return AdmissionChecker(config)
