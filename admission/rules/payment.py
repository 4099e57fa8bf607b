"""
Mint Payment Rule

Rejects mints whose attached payment does not cover cost * quantity.
Overpayment is admitted; the surplus stays with the collection.
"""

from admission.core import AdmissionContext, AdmissionRule
from registry.exceptions import InsufficientPaymentError


class PaymentRule(AdmissionRule):
    """Validation rule that requires payment >= cost * quantity."""

    def __init__(self, enabled: bool = True):
        super().__init__(
            name="payment",
            description="Requires payment covering the cost of the minted tokens",
            enabled=enabled
        )

    def validate(self, context: AdmissionContext) -> bool:
        required = context.required_payment

        if context.payment < required:
            return self._fail(
                context,
                InsufficientPaymentError(required=required, provided=context.payment)
            )

        if context.payment > required:
            self.logger.debug(
                f"Payment {context.payment} exceeds required {required}; surplus is retained"
            )

        return self._pass(context)
