"""
NFT Storefront - Collection Manager

This module provides the handle through which a deployed collection is
read and mutated: deployment, minting, whitelist and pause administration,
withdrawals, ownership transfer and the token queries the storefront needs.
"""

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from admission.core import AdmissionChecker, AdmissionContext
from .concurrency import ReadWriteLock
from .exceptions import (
    CollectionExistsError, InvalidNewOwnerError, NotOwnerError,
    RejectionError, TokenNotFoundError
)
from .schema import (
    Collection, CollectionConfig, CollectionEvent, EventType,
    ZERO_ADDRESS, normalize_address
)
from .storage import CollectionStorage


logger = logging.getLogger(__name__)

EventListener = Callable[[CollectionEvent], None]


def _system_clock() -> int:
    return int(time.time())


class CollectionManager:
    """
    Single owned handle around a collection.

    Every mutation runs under the write lock against a copy of the
    collection; the copy is persisted and swapped in only when the whole
    operation succeeded, so a rejection or storage failure leaves the
    collection untouched.
    """

    def __init__(
        self,
        collection: Collection,
        storage: Optional[CollectionStorage] = None,
        checker: Optional[AdmissionChecker] = None,
        clock: Optional[Callable[[], int]] = None,
        lock_timeout: float = 30.0
    ):
        self._collection = collection
        self.storage = storage
        self.checker = checker or AdmissionChecker()
        self.clock = clock or _system_clock
        self._lock = ReadWriteLock(name=f"collection:{collection.config.symbol}", timeout=lock_timeout)
        self._listeners: List[Tuple[Optional[EventType], EventListener]] = []

        self.stats = {
            "mints": 0,
            "tokens_minted": 0,
            "withdrawals": 0,
            "rejections": 0,
            "rejections_by_code": {},
        }

    @classmethod
    def deploy(
        cls,
        config: CollectionConfig,
        deployer: str,
        storage_dir: Optional[Union[str, Path]] = None,
        overwrite: bool = False,
        **kwargs: Any
    ) -> "CollectionManager":
        """
        Deploy a new collection owned by ``deployer``.

        Args:
            config: Deployment parameters
            deployer: Address that becomes the collection owner
            storage_dir: Directory to persist the collection in; in-memory if None
            overwrite: Replace an existing collection in ``storage_dir``
            **kwargs: Passed to the manager (checker, clock, lock_timeout)

        Raises:
            CollectionExistsError: If a collection is already stored and
                ``overwrite`` is False
        """
        deployer = normalize_address(deployer)
        collection = Collection(config=config, owner=deployer)
        collection.record_event(
            EventType.OWNERSHIP_TRANSFERRED,
            previous_owner=ZERO_ADDRESS,
            new_owner=deployer
        )

        storage = None
        if storage_dir is not None:
            storage = CollectionStorage(storage_dir, lock_timeout=kwargs.get("lock_timeout", 30.0))
            if storage.is_deployed() and not overwrite:
                raise CollectionExistsError(f"A collection is already deployed in {storage_dir}")
            storage.save_collection(collection)

        logger.info(
            f"Deployed collection {config.name} ({config.symbol}) owned by {deployer}: "
            f"cost={config.cost} wei, max_supply={config.max_supply}, "
            f"allow_minting_on={config.allow_minting_on}"
        )
        return cls(collection, storage=storage, **kwargs)

    @classmethod
    def open(cls, storage_dir: Union[str, Path], **kwargs: Any) -> "CollectionManager":
        """
        Open a previously deployed collection.

        Raises:
            CollectionNotDeployedError: If nothing is stored in ``storage_dir``
        """
        storage = CollectionStorage(storage_dir, lock_timeout=kwargs.get("lock_timeout", 30.0))
        collection = storage.load_collection()
        logger.debug(f"Opened collection {collection.config.symbol} from {storage_dir}")
        return cls(collection, storage=storage, **kwargs)

    def connect(self, identity: str) -> "ConnectedCollection":
        """Return a handle bound to ``identity`` as the caller."""
        return ConnectedCollection(self, identity)

    def subscribe(self, callback: EventListener, event_type: Optional[EventType] = None) -> None:
        """Call ``callback`` for every committed event (of ``event_type`` if given)."""
        self._listeners.append((event_type, callback))

    def unsubscribe(self, callback: EventListener) -> None:
        self._listeners = [(et, cb) for et, cb in self._listeners if cb != callback]

    # Mutations

    def _transact(
        self,
        operation: str,
        mutator: Callable[[Collection], Any],
        on_commit: Optional[Callable[[Any], None]] = None
    ) -> Any:
        """
        Apply ``mutator`` to a copy of the collection and commit it atomically.

        With storage attached the copy is the stored collection, reloaded
        while the storage lock is held through the save, so every handle
        on the same directory applies its changes to the latest commit.
        ``on_commit`` runs with the result before the write lock is released.
        """
        with self._lock.write_lock():
            if self.storage is None:
                draft = self._collection.model_copy(deep=True)
                result, new_events = self._apply(operation, mutator, draft)
            else:
                with self.storage.transaction() as draft:
                    result, new_events = self._apply(operation, mutator, draft)
                    self.storage.save_collection(draft)

            self._collection = draft
            if on_commit is not None:
                on_commit(result)

        self._dispatch(new_events)
        return result

    def _apply(
        self,
        operation: str,
        mutator: Callable[[Collection], Any],
        draft: Collection
    ) -> Tuple[Any, List[CollectionEvent]]:
        first_new_event = len(draft.events)
        try:
            result = mutator(draft)
        except RejectionError as e:
            self._record_rejection(e)
            logger.warning(f"{operation} rejected: {e}")
            raise
        return result, draft.events[first_new_event:]

    def _record_rejection(self, error: RejectionError) -> None:
        self.stats["rejections"] += 1
        by_code = self.stats["rejections_by_code"]
        by_code[error.code] = by_code.get(error.code, 0) + 1

    def _dispatch(self, events: List[CollectionEvent]) -> None:
        for event in events:
            for event_type, callback in list(self._listeners):
                if event_type is not None and event.event != event_type:
                    continue
                try:
                    callback(event)
                except Exception as e:
                    # The transaction is already committed; a listener cannot undo it
                    logger.error(f"Event listener failed on {event.event.value}: {e}")

    @staticmethod
    def _require_owner(collection: Collection, caller: str) -> str:
        caller = normalize_address(caller)
        if caller != collection.owner:
            raise NotOwnerError(caller=caller)
        return caller

    def mint(self, caller: str, quantity: int, payment: int) -> List[int]:
        """
        Mint ``quantity`` tokens to ``caller`` paying ``payment`` wei.

        Returns:
            The newly assigned token ids

        Raises:
            AdmissionError: The first failing admission check
        """
        caller = normalize_address(caller)
        if payment < 0:
            raise ValueError(f"Payment cannot be negative: {payment}")

        def mutator(collection: Collection) -> List[int]:
            now = self.clock()
            context = AdmissionContext.from_collection(collection, caller, quantity, payment, now)
            self.checker.check(context)

            token_ids = collection.assign_tokens(caller, quantity)
            collection.balance += payment
            collection.record_event(EventType.MINT, token_id=token_ids[-1], minter=caller)
            return token_ids

        token_ids = self._transact("Mint", mutator, on_commit=self._record_mint)
        logger.info(f"Minted tokens {token_ids} to {caller} for {payment} wei")
        return token_ids

    def _record_mint(self, token_ids: List[int]) -> None:
        self.stats["mints"] += 1
        self.stats["tokens_minted"] += len(token_ids)

    def add_to_whitelist(self, caller: str, identity: str) -> bool:
        """Whitelist ``identity``. Returns False if it was already whitelisted."""
        identity = normalize_address(identity)

        def mutator(collection: Collection) -> bool:
            self._require_owner(collection, caller)
            return collection.add_to_whitelist(identity)

        added = self._transact("Whitelist update", mutator)
        if added:
            logger.info(f"Added {identity} to whitelist")
        else:
            logger.debug(f"{identity} already whitelisted")
        return added

    def set_paused(self, caller: str, paused: bool) -> None:
        def mutator(collection: Collection) -> None:
            self._require_owner(collection, caller)
            collection.paused = bool(paused)

        self._transact("Pause update", mutator)
        logger.info(f"Minting {'paused' if paused else 'unpaused'}")

    def withdraw(self, caller: str) -> int:
        """
        Move the whole contract balance to the owner's account.

        Returns:
            The amount withdrawn in wei
        """
        def mutator(collection: Collection) -> int:
            owner = self._require_owner(collection, caller)
            amount = collection.balance
            collection.balance = 0
            collection.credit_account(owner, amount)
            collection.record_event(EventType.WITHDRAW, amount=amount, owner=owner)
            return amount

        amount = self._transact("Withdraw", mutator, on_commit=self._record_withdrawal)
        logger.info(f"Withdrew {amount} wei to owner")
        return amount

    def _record_withdrawal(self, amount: int) -> None:
        self.stats["withdrawals"] += 1

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        new_owner = normalize_address(new_owner)

        def mutator(collection: Collection) -> None:
            previous_owner = self._require_owner(collection, caller)
            if new_owner == ZERO_ADDRESS:
                raise InvalidNewOwnerError()
            collection.owner = new_owner
            collection.record_event(
                EventType.OWNERSHIP_TRANSFERRED,
                previous_owner=previous_owner,
                new_owner=new_owner
            )

        self._transact("Ownership transfer", mutator)
        logger.info(f"Ownership transferred to {new_owner}")

    # Queries

    def _read(self, reader: Callable[[Collection], Any]) -> Any:
        with self._lock.read_lock():
            return reader(self._collection)

    def preview_mint(self, caller: str, quantity: int, payment: int) -> AdmissionContext:
        """Evaluate a mint against the current state without committing it."""
        caller = normalize_address(caller)
        # The checker keeps running statistics, so it only runs under the write lock
        with self._lock.write_lock():
            context = AdmissionContext.from_collection(
                self._collection, caller, quantity, payment, self.clock()
            )
            return self.checker.evaluate(context)

    def owner_of(self, token_id: int) -> str:
        return self._read(lambda c: c.owner_of(token_id))

    def token_uri(self, token_id: int) -> str:
        return self._read(lambda c: c.token_uri(token_id))

    def wallet_of_owner(self, identity: str) -> List[int]:
        return self._read(lambda c: c.wallet_of_owner(identity))

    def token_of_owner_by_index(self, identity: str, index: int) -> int:
        wallet = self.wallet_of_owner(identity)
        if index < 0 or index >= len(wallet):
            raise TokenNotFoundError("Owner index out of bounds", identity=identity, index=index)
        return wallet[index]

    def token_by_index(self, index: int) -> int:
        total = self.total_supply()
        if index < 0 or index >= total:
            raise TokenNotFoundError("Global index out of bounds", index=index)
        return index + 1

    def balance_of(self, identity: str) -> int:
        return self._read(lambda c: c.balance_of(identity))

    def is_whitelisted(self, identity: str) -> bool:
        return self._read(lambda c: c.is_whitelisted(identity))

    def account_balance(self, identity: str) -> int:
        """Funds withdrawn to ``identity``."""
        return self._read(lambda c: c.account_balance(identity))

    def total_supply(self) -> int:
        return self._read(lambda c: c.total_minted)

    def contract_balance(self) -> int:
        return self._read(lambda c: c.balance)

    def name(self) -> str:
        return self._read(lambda c: c.config.name)

    def symbol(self) -> str:
        return self._read(lambda c: c.config.symbol)

    def cost(self) -> int:
        return self._read(lambda c: c.config.cost)

    def max_supply(self) -> int:
        return self._read(lambda c: c.config.max_supply)

    def max_mint_amount(self) -> int:
        return self._read(lambda c: c.config.max_mint_amount)

    def allow_minting_on(self) -> int:
        return self._read(lambda c: c.config.allow_minting_on)

    def base_uri(self) -> str:
        return self._read(lambda c: c.config.base_uri)

    def paused(self) -> bool:
        return self._read(lambda c: c.paused)

    def owner(self) -> str:
        return self._read(lambda c: c.owner)

    def events(self, event_type: Optional[EventType] = None) -> List[CollectionEvent]:
        def reader(collection: Collection) -> List[CollectionEvent]:
            return [
                event.model_copy() for event in collection.events
                if event_type is None or event.event == event_type
            ]
        return self._read(reader)

    def snapshot(self) -> Collection:
        """Deep copy of the current collection state."""
        return self._read(lambda c: c.model_copy(deep=True))

    def get_info(self) -> Dict[str, Any]:
        """Storefront summary of the collection."""
        now = self.clock()

        def reader(collection: Collection) -> Dict[str, Any]:
            config = collection.config
            return {
                'name': config.name,
                'symbol': config.symbol,
                'owner': collection.owner,
                'cost': config.cost,
                'max_supply': config.max_supply,
                'total_supply': collection.total_minted,
                'remaining_supply': config.max_supply - collection.total_minted,
                'max_mint_amount': config.max_mint_amount,
                'allow_minting_on': config.allow_minting_on,
                'seconds_until_mint': max(0, config.allow_minting_on - now),
                'paused': collection.paused,
                'base_uri': config.base_uri,
                'contract_balance': collection.balance,
                'whitelist_size': len(collection.whitelist),
            }
        return self._read(reader)

    def get_statistics(self) -> Dict[str, Any]:
        return {
            **self.stats,
            'admission': self.checker.get_statistics(),
            'lock': self._lock.get_metrics(),
            'storage': self.storage.get_storage_info() if self.storage else None,
        }

    def reload(self) -> None:
        """Reload the collection from storage."""
        if self.storage is None:
            return
        with self._lock.write_lock():
            self._collection = self.storage.load_collection()


class ConnectedCollection:
    """
    A collection handle bound to one caller address.

    Mirrors connecting a signer to a contract: write operations are sent
    as ``account``; queries go straight to the manager.
    """

    def __init__(self, manager: CollectionManager, account: str):
        self.manager = manager
        self.account = normalize_address(account)

    def mint(self, quantity: int, payment: Optional[int] = None) -> List[int]:
        """Mint ``quantity`` tokens; pays cost * quantity unless ``payment`` is given."""
        if payment is None:
            payment = self.manager.cost() * max(quantity, 0)
        return self.manager.mint(self.account, quantity, payment)

    def preview_mint(self, quantity: int, payment: Optional[int] = None) -> AdmissionContext:
        if payment is None:
            payment = self.manager.cost() * max(quantity, 0)
        return self.manager.preview_mint(self.account, quantity, payment)

    def add_to_whitelist(self, identity: str) -> bool:
        return self.manager.add_to_whitelist(self.account, identity)

    def set_paused(self, paused: bool) -> None:
        self.manager.set_paused(self.account, paused)

    def withdraw(self) -> int:
        return self.manager.withdraw(self.account)

    def transfer_ownership(self, new_owner: str) -> None:
        self.manager.transfer_ownership(self.account, new_owner)

    def is_owner(self) -> bool:
        return self.manager.owner() == self.account

    def wallet(self) -> List[int]:
        return self.manager.wallet_of_owner(self.account)

    def balance(self) -> int:
        return self.manager.balance_of(self.account)
