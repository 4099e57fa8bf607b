"""
NFT Storefront - Registry Exceptions

This module defines the exception taxonomy for collection operations.
Every rejection carries a stable code and the human readable reason that
callers surface to end users.
"""

from typing import Any


class RegistryError(Exception):
    """Base registry exception."""
    pass


class CollectionExistsError(RegistryError):
    """Collection already deployed in the target storage."""
    pass


class CollectionNotDeployedError(RegistryError):
    """No collection has been deployed in the target storage."""
    pass


class InvalidAddressError(RegistryError, ValueError):
    """Malformed account address."""
    pass


class RejectionError(RegistryError):
    """
    Base class for rejected operations.

    A rejection never leaves partial state behind: the collection is
    exactly as it was before the attempted operation.
    """

    code = "REJECTED"
    reason = "Transaction rejected"

    def __init__(self, message: str = None, **details: Any):
        self.details = details
        super().__init__(message or self.reason)


class AdmissionError(RejectionError):
    """Mint attempt refused by the admission checker."""

    code = "ADMISSION_REJECTED"
    reason = "Mint rejected"


class MintingPausedError(AdmissionError):
    code = "MINTING_PAUSED"
    reason = "Minting is paused"


class MintingNotYetAllowedError(AdmissionError):
    code = "MINTING_NOT_YET_ALLOWED"
    reason = "Minting not allowed yet"


class InvalidQuantityError(AdmissionError):
    code = "INVALID_QUANTITY"
    reason = "Mint amount must be greater than 0"


class QuantityExceedsPerTxLimitError(AdmissionError):
    code = "QUANTITY_EXCEEDS_PER_TX_LIMIT"
    reason = "Exceeds max mint amount per transaction"


class SupplyExceededError(AdmissionError):
    code = "SUPPLY_EXCEEDED"
    reason = "Exceeds max supply"


class InsufficientPaymentError(AdmissionError):
    """Attached payment is below cost * quantity."""

    code = "INSUFFICIENT_PAYMENT"
    reason = "Not enough ether to mint"

    def __init__(self, required: int, provided: int, message: str = None):
        self.required = required
        self.provided = provided
        super().__init__(message, required=required, provided=provided)


class NotWhitelistedError(AdmissionError):
    code = "NOT_WHITELISTED"
    reason = "User is not whitelisted"


class TokenNotFoundError(RejectionError):
    code = "TOKEN_NOT_FOUND"
    reason = "Token does not exist"


class NotOwnerError(RejectionError):
    code = "NOT_OWNER"
    reason = "Ownable: caller is not the owner"


class InvalidNewOwnerError(RejectionError, InvalidAddressError):
    code = "INVALID_NEW_OWNER"
    reason = "Ownable: new owner is the zero address"
