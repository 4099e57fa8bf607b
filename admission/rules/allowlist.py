"""
Whitelist Validation Rule

This module implements the WhitelistRule that restricts minting to
addresses the collection owner has added to the whitelist.
"""

from admission.core import AdmissionContext, AdmissionRule
from registry.exceptions import NotWhitelistedError


class WhitelistRule(AdmissionRule):
    """
    Validation rule that admits only whitelisted callers.

    Disable the rule (``enabled=False``) to open minting to every address.
    """

    def __init__(self, enabled: bool = True):
        super().__init__(
            name="whitelist",
            description="Restricts minting to whitelisted addresses",
            enabled=enabled
        )

    def validate(self, context: AdmissionContext) -> bool:
        if not context.whitelisted:
            return self._fail(context, NotWhitelistedError(caller=context.caller))
        return self._pass(context)
