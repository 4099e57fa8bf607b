"""
NFT Storefront - Registry Schema Models

This module defines the Pydantic models for collection deployment parameters,
the collection state aggregate and its event log.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .exceptions import InvalidAddressError, SupplyExceededError, TokenNotFoundError


ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')
ZERO_ADDRESS = "0x" + "0" * 40
DEFAULT_MAX_MINT_AMOUNT = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_address(value: str) -> str:
    """Validate an account address and return its lowercase form."""
    if not isinstance(value, str) or not ADDRESS_PATTERN.match(value.strip()):
        raise InvalidAddressError(f"Invalid account address: {value!r}")
    return value.strip().lower()


class EventType(str, Enum):
    """Collection event enumeration."""
    MINT = "Mint"
    WITHDRAW = "Withdraw"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


class CollectionEvent(BaseModel):
    """Notification emitted by a committed collection operation."""

    sequence: int = Field(..., ge=1, description="Position in the event log")
    event: EventType
    args: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)


class CollectionConfig(BaseModel):
    """Deployment parameters of a collection."""

    name: str = Field(..., min_length=1, max_length=100, description="Collection name")
    symbol: str = Field(..., min_length=1, max_length=10, description="Collection symbol")
    cost: int = Field(..., ge=0, description="Price per token in wei")
    max_supply: int = Field(..., gt=0, description="Maximum number of tokens")
    allow_minting_on: int = Field(..., ge=0, description="Unix timestamp when minting opens")
    base_uri: str = Field(..., min_length=1, description="Metadata URI prefix")
    max_mint_amount: int = Field(
        default=DEFAULT_MAX_MINT_AMOUNT, gt=0, description="Maximum tokens per mint transaction"
    )

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v):
        """Validate symbol format."""
        if not re.match(r'^[A-Za-z0-9]+$', v):
            raise ValueError('Symbol must contain only letters and numbers')
        return v.upper()

    @field_validator('base_uri')
    @classmethod
    def validate_base_uri(cls, v):
        """Token URIs are built by appending '<id>.json' to the base URI."""
        if not v.endswith('/'):
            raise ValueError("Base URI must end with '/'")
        return v


class Collection(BaseModel):
    """
    Complete collection state.

    Token ownership is an append-only arena: the owner of token ``n`` is
    stored at ``owners[n - 1]``, so ids are contiguous from 1 and never reused.
    """

    version: str = Field(default="1.0.0", description="State schema version")
    config: CollectionConfig
    owner: str = Field(..., description="Collection owner address")
    paused: bool = Field(default=False)
    owners: List[str] = Field(default_factory=list, description="Token owners by id - 1")
    whitelist: List[str] = Field(default_factory=list, description="Addresses allowed to mint")
    balance: int = Field(default=0, ge=0, description="Accumulated payments in wei")
    accounts: Dict[str, int] = Field(default_factory=dict, description="Withdrawn funds per address")
    events: List[CollectionEvent] = Field(default_factory=list)
    deployed_at: datetime = Field(default_factory=utc_now)

    @field_validator('owner')
    @classmethod
    def validate_owner(cls, v):
        return normalize_address(v)

    @field_validator('owners')
    @classmethod
    def validate_owners(cls, v):
        return [normalize_address(address) for address in v]

    @field_validator('whitelist')
    @classmethod
    def validate_whitelist(cls, v):
        """Normalize and de-duplicate, keeping insertion order."""
        seen = []
        for address in v:
            address = normalize_address(address)
            if address not in seen:
                seen.append(address)
        return seen

    @field_validator('accounts')
    @classmethod
    def validate_accounts(cls, v):
        accounts = {}
        for address, amount in v.items():
            if amount < 0:
                raise ValueError('Account balances cannot be negative')
            accounts[normalize_address(address)] = amount
        return accounts

    @model_validator(mode='after')
    def validate_supply(self):
        """Minted count can never exceed the supply cap."""
        if len(self.owners) > self.config.max_supply:
            raise ValueError(
                f'Minted tokens ({len(self.owners)}) exceed max supply ({self.config.max_supply})'
            )
        return self

    @property
    def total_minted(self) -> int:
        return len(self.owners)

    def is_whitelisted(self, identity: str) -> bool:
        return normalize_address(identity) in self.whitelist

    def add_to_whitelist(self, identity: str) -> bool:
        """Add an address to the whitelist. Returns False if already present."""
        identity = normalize_address(identity)
        if identity in self.whitelist:
            return False
        self.whitelist.append(identity)
        return True

    def assign_tokens(self, minter: str, quantity: int) -> List[int]:
        """Assign the next ``quantity`` sequential token ids to ``minter``."""
        minter = normalize_address(minter)
        if self.total_minted + quantity > self.config.max_supply:
            raise SupplyExceededError(
                total_minted=self.total_minted,
                quantity=quantity,
                max_supply=self.config.max_supply,
            )

        first_id = self.total_minted + 1
        self.owners.extend([minter] * quantity)
        return list(range(first_id, first_id + quantity))

    def owner_of(self, token_id: int) -> str:
        if not isinstance(token_id, int) or token_id < 1 or token_id > self.total_minted:
            raise TokenNotFoundError(token_id=token_id)
        return self.owners[token_id - 1]

    def token_uri(self, token_id: int) -> str:
        self.owner_of(token_id)
        return f"{self.config.base_uri}{token_id}.json"

    def wallet_of_owner(self, identity: str) -> List[int]:
        """Token ids owned by ``identity`` in ascending order."""
        identity = normalize_address(identity)
        return [
            index + 1
            for index, token_owner in enumerate(self.owners)
            if token_owner == identity
        ]

    def balance_of(self, identity: str) -> int:
        identity = normalize_address(identity)
        return sum(1 for token_owner in self.owners if token_owner == identity)

    def credit_account(self, identity: str, amount: int) -> int:
        identity = normalize_address(identity)
        self.accounts[identity] = self.accounts.get(identity, 0) + amount
        return self.accounts[identity]

    def account_balance(self, identity: str) -> int:
        return self.accounts.get(normalize_address(identity), 0)

    def record_event(self, event_type: EventType, timestamp: Optional[datetime] = None,
                     **args: Any) -> CollectionEvent:
        """Append an event to the log."""
        event = CollectionEvent(
            sequence=len(self.events) + 1,
            event=event_type,
            args=args,
            timestamp=timestamp or utc_now(),
        )
        self.events.append(event)
        return event
