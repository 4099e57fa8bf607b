"""
Per-Mint Quantity Rule

This module implements the MintQuantityRule that bounds the number of
tokens a single mint transaction may request.
"""

from admission.core import AdmissionContext, AdmissionRule
from registry.exceptions import InvalidQuantityError, QuantityExceedsPerTxLimitError


class MintQuantityRule(AdmissionRule):
    """
    Validation rule that enforces 1 <= quantity <= max_mint_amount.

    The lower bound is checked first so a zero or negative request is
    always reported as an invalid quantity.
    """

    def __init__(self, enabled: bool = True):
        super().__init__(
            name="mint_quantity",
            description="Enforces per-transaction mint quantity limits",
            enabled=enabled
        )

    def validate(self, context: AdmissionContext) -> bool:
        if context.quantity < 1:
            return self._fail(context, InvalidQuantityError(quantity=context.quantity))

        if context.quantity > context.max_mint_amount:
            return self._fail(
                context,
                QuantityExceedsPerTxLimitError(
                    quantity=context.quantity,
                    max_mint_amount=context.max_mint_amount
                )
            )

        return self._pass(context)
