"""
Mint Schedule Rules

Rules gating minting on the collection's pause flag and on the time the
mint window opens.
"""

from admission.core import AdmissionContext, AdmissionRule
from registry.exceptions import MintingNotYetAllowedError, MintingPausedError


class PauseRule(AdmissionRule):
    """Rejects every mint while the owner has paused the collection."""

    def __init__(self, enabled: bool = True):
        super().__init__(
            name="pause",
            description="Rejects mints while the collection is paused",
            enabled=enabled
        )

    def validate(self, context: AdmissionContext) -> bool:
        if context.paused:
            return self._fail(context, MintingPausedError())
        return self._pass(context)


class MintWindowRule(AdmissionRule):
    """
    Rejects mints before the collection's ``allow_minting_on`` timestamp.

    The window opens inclusively: a mint at exactly the opening second
    is admitted.
    """

    def __init__(self, enabled: bool = True):
        super().__init__(
            name="mint_window",
            description="Rejects mints before the mint window opens",
            enabled=enabled
        )

    def validate(self, context: AdmissionContext) -> bool:
        if context.timestamp < context.allow_minting_on:
            return self._fail(
                context,
                MintingNotYetAllowedError(
                    allow_minting_on=context.allow_minting_on,
                    seconds_remaining=context.allow_minting_on - context.timestamp
                )
            )
        return self._pass(context)
