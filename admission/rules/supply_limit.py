"""
Supply Limit Enforcement Rule

This module implements the SupplyLimitRule class that validates whether
a mint would push the collection past its maximum supply.
"""

from admission.core import AdmissionContext, AdmissionRule
from registry.exceptions import SupplyExceededError


class SupplyLimitRule(AdmissionRule):
    """Validation rule that enforces the collection's maximum supply."""

    def __init__(self, enabled: bool = True):
        super().__init__(
            name="supply_limit",
            description="Enforces the maximum supply of the collection",
            enabled=enabled
        )

    def validate(self, context: AdmissionContext) -> bool:
        new_supply = context.total_minted + context.quantity

        if new_supply > context.max_supply:
            remaining_capacity = context.max_supply - context.total_minted
            self.logger.debug(
                f"Supply check failed: {context.total_minted} + {context.quantity} = "
                f"{new_supply} > {context.max_supply}"
            )
            return self._fail(
                context,
                SupplyExceededError(
                    total_minted=context.total_minted,
                    quantity=context.quantity,
                    max_supply=context.max_supply,
                    remaining_capacity=remaining_capacity
                )
            )

        return self._pass(context)
