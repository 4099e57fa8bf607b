"""
Unit tests for the collection manager.
"""

import pytest

from admission.core import AdmissionChecker
from registry.exceptions import (
    CollectionExistsError, CollectionNotDeployedError, InsufficientPaymentError,
    InvalidAddressError, InvalidQuantityError, MintingNotYetAllowedError,
    MintingPausedError, NotOwnerError, NotWhitelistedError,
    QuantityExceedsPerTxLimitError, SupplyExceededError, TokenNotFoundError
)
from registry.manager import CollectionManager
from registry.schema import EventType, ZERO_ADDRESS


class TestDeployment:
    """Test collection deployment and opening."""

    def test_deploy_sets_parameters(self, manager, deployer):
        assert manager.name() == "Dapp Punks"
        assert manager.symbol() == "DP"
        assert manager.cost() == 10 * 10**18
        assert manager.max_supply() == 25
        assert manager.max_mint_amount() == 5
        assert manager.owner() == deployer
        assert manager.total_supply() == 0
        assert manager.paused() is False

    def test_deploy_emits_ownership_event(self, manager, deployer):
        events = manager.events()

        assert len(events) == 1
        assert events[0].event == EventType.OWNERSHIP_TRANSFERRED
        assert events[0].args == {"previous_owner": ZERO_ADDRESS, "new_owner": deployer}

    def test_deploy_invalid_deployer(self, collection_config):
        with pytest.raises(InvalidAddressError):
            CollectionManager.deploy(collection_config, "bob")

    def test_deploy_persists(self, stored_manager, temp_storage_dir, deployer):
        reopened = CollectionManager.open(temp_storage_dir)
        assert reopened.owner() == deployer
        assert reopened.max_supply() == 25

    def test_deploy_refuses_existing(self, stored_manager, collection_config, temp_storage_dir, deployer):
        with pytest.raises(CollectionExistsError):
            CollectionManager.deploy(collection_config, deployer, storage_dir=temp_storage_dir)

    def test_deploy_overwrite(self, stored_manager, collection_config, temp_storage_dir, other):
        CollectionManager.deploy(
            collection_config, other, storage_dir=temp_storage_dir, overwrite=True
        )
        assert CollectionManager.open(temp_storage_dir).owner() == other

    def test_open_empty_directory(self, temp_storage_dir):
        with pytest.raises(CollectionNotDeployedError):
            CollectionManager.open(temp_storage_dir)


class TestMinting:
    """Test mint admission and effects."""

    def test_mint_assigns_sequential_ids(self, whitelisted_manager, minter):
        cost = whitelisted_manager.cost()

        assert whitelisted_manager.mint(minter, 3, 3 * cost) == [1, 2, 3]
        assert whitelisted_manager.mint(minter, 2, 2 * cost) == [4, 5]
        assert whitelisted_manager.total_supply() == 5
        assert whitelisted_manager.wallet_of_owner(minter) == [1, 2, 3, 4, 5]

    def test_mint_collects_payment(self, whitelisted_manager, minter):
        cost = whitelisted_manager.cost()
        whitelisted_manager.mint(minter, 2, 2 * cost)
        assert whitelisted_manager.contract_balance() == 2 * cost

    def test_overpayment_kept(self, whitelisted_manager, minter):
        cost = whitelisted_manager.cost()
        whitelisted_manager.mint(minter, 1, 3 * cost)
        assert whitelisted_manager.contract_balance() == 3 * cost

    def test_mint_event(self, whitelisted_manager, minter):
        whitelisted_manager.mint(minter, 3, 3 * whitelisted_manager.cost())

        events = whitelisted_manager.events(EventType.MINT)
        assert len(events) == 1
        assert events[0].args == {"token_id": 3, "minter": minter}

    def test_mint_before_window(self, whitelisted_manager, minter, clock):
        clock.now = whitelisted_manager.allow_minting_on() - 1

        with pytest.raises(MintingNotYetAllowedError, match="Minting not allowed yet"):
            whitelisted_manager.mint(minter, 1, whitelisted_manager.cost())

    def test_mint_at_window_open(self, whitelisted_manager, minter, clock):
        clock.now = whitelisted_manager.allow_minting_on()
        assert whitelisted_manager.mint(minter, 1, whitelisted_manager.cost()) == [1]

    def test_mint_when_paused(self, whitelisted_manager, deployer, minter):
        whitelisted_manager.set_paused(deployer, True)

        with pytest.raises(MintingPausedError, match="Minting is paused"):
            whitelisted_manager.mint(minter, 1, whitelisted_manager.cost())

    def test_mint_zero(self, whitelisted_manager, minter):
        with pytest.raises(InvalidQuantityError):
            whitelisted_manager.mint(minter, 0, 0)

    def test_mint_above_per_tx_limit(self, whitelisted_manager, minter):
        with pytest.raises(QuantityExceedsPerTxLimitError):
            whitelisted_manager.mint(minter, 6, 6 * whitelisted_manager.cost())

    def test_mint_past_supply(self, whitelisted_manager, minter):
        cost = whitelisted_manager.cost()
        for _ in range(5):
            whitelisted_manager.mint(minter, 5, 5 * cost)

        with pytest.raises(SupplyExceededError, match="Exceeds max supply"):
            whitelisted_manager.mint(minter, 1, cost)
        assert whitelisted_manager.total_supply() == 25

    def test_mint_underpaid(self, whitelisted_manager, minter):
        with pytest.raises(InsufficientPaymentError, match="Not enough ether to mint"):
            whitelisted_manager.mint(minter, 2, whitelisted_manager.cost())

    def test_mint_not_whitelisted(self, manager, minter):
        with pytest.raises(NotWhitelistedError, match="User is not whitelisted"):
            manager.mint(minter, 1, manager.cost())

    def test_mint_open_collection(self, collection_config, clock, deployer, minter, open_checker):
        manager = CollectionManager.deploy(collection_config, deployer, clock=clock, checker=open_checker)
        assert manager.mint(minter, 1, manager.cost()) == [1]

    def test_negative_payment(self, whitelisted_manager, minter):
        with pytest.raises(ValueError):
            whitelisted_manager.mint(minter, 1, -1)

    def test_rejection_leaves_state_untouched(self, whitelisted_manager, minter):
        cost = whitelisted_manager.cost()
        whitelisted_manager.mint(minter, 2, 2 * cost)
        before = whitelisted_manager.snapshot()

        with pytest.raises(InsufficientPaymentError):
            whitelisted_manager.mint(minter, 3, cost)

        after = whitelisted_manager.snapshot()
        assert after.owners == before.owners
        assert after.balance == before.balance
        assert len(after.events) == len(before.events)

    def test_rejection_statistics(self, whitelisted_manager, minter):
        with pytest.raises(InvalidQuantityError):
            whitelisted_manager.mint(minter, 0, 0)
        whitelisted_manager.mint(minter, 2, 2 * whitelisted_manager.cost())

        stats = whitelisted_manager.get_statistics()
        assert stats["mints"] == 1
        assert stats["tokens_minted"] == 2
        assert stats["rejections"] == 1
        assert stats["rejections_by_code"] == {"INVALID_QUANTITY": 1}

    def test_preview_mint(self, whitelisted_manager, minter, other):
        cost = whitelisted_manager.cost()

        assert not whitelisted_manager.preview_mint(minter, 1, cost).is_rejected()
        preview = whitelisted_manager.preview_mint(other, 1, cost)
        assert preview.rejected_by == "whitelist"
        assert whitelisted_manager.total_supply() == 0


class TestQueries:
    """Test token and account queries."""

    @pytest.fixture
    def minted(self, whitelisted_manager, deployer, minter, other):
        cost = whitelisted_manager.cost()
        whitelisted_manager.add_to_whitelist(deployer, other)
        whitelisted_manager.mint(minter, 2, 2 * cost)
        whitelisted_manager.mint(other, 1, cost)
        whitelisted_manager.mint(minter, 1, cost)
        return whitelisted_manager

    def test_owner_of(self, minted, minter, other):
        assert minted.owner_of(1) == minter
        assert minted.owner_of(3) == other

    def test_owner_of_missing(self, minted):
        with pytest.raises(TokenNotFoundError, match="Token does not exist"):
            minted.owner_of(99)

    def test_token_uri(self, minted):
        assert minted.token_uri(1) == f"{minted.base_uri()}1.json"

    def test_token_uri_missing(self, minted):
        with pytest.raises(TokenNotFoundError):
            minted.token_uri(99)

    def test_wallet_and_balance(self, minted, minter, other, deployer):
        assert minted.wallet_of_owner(minter) == [1, 2, 4]
        assert minted.balance_of(minter) == 3
        assert minted.balance_of(other) == 1
        assert minted.wallet_of_owner(deployer) == []

    def test_token_of_owner_by_index(self, minted, minter):
        assert minted.token_of_owner_by_index(minter, 2) == 4
        with pytest.raises(TokenNotFoundError):
            minted.token_of_owner_by_index(minter, 3)

    def test_token_by_index(self, minted):
        assert minted.token_by_index(0) == 1
        assert minted.token_by_index(3) == 4
        with pytest.raises(TokenNotFoundError):
            minted.token_by_index(4)

    def test_get_info(self, minted, clock):
        info = minted.get_info()

        assert info["total_supply"] == 4
        assert info["remaining_supply"] == 21
        assert info["whitelist_size"] == 2
        assert info["seconds_until_mint"] == 0
        assert info["contract_balance"] == 4 * minted.cost()

    def test_seconds_until_mint(self, manager, clock):
        clock.now = manager.allow_minting_on() - 30
        assert manager.get_info()["seconds_until_mint"] == 30

    def test_snapshot_is_copy(self, minted):
        snapshot = minted.snapshot()
        snapshot.owners.clear()
        assert minted.total_supply() == 4


class TestAdministration:
    """Test owner-only operations."""

    def test_add_to_whitelist(self, manager, deployer, minter):
        assert manager.add_to_whitelist(deployer, minter) is True
        assert manager.add_to_whitelist(deployer, minter) is False
        assert manager.is_whitelisted(minter)

    def test_add_to_whitelist_not_owner(self, manager, minter):
        with pytest.raises(NotOwnerError, match="Ownable: caller is not the owner"):
            manager.add_to_whitelist(minter, minter)
        assert not manager.is_whitelisted(minter)

    def test_pause_and_unpause(self, manager, deployer):
        manager.set_paused(deployer, True)
        assert manager.paused() is True
        manager.set_paused(deployer, False)
        assert manager.paused() is False

    def test_pause_not_owner(self, manager, minter):
        with pytest.raises(NotOwnerError):
            manager.set_paused(minter, True)

    def test_withdraw(self, whitelisted_manager, deployer, minter):
        cost = whitelisted_manager.cost()
        whitelisted_manager.mint(minter, 3, 3 * cost)

        assert whitelisted_manager.withdraw(deployer) == 3 * cost
        assert whitelisted_manager.contract_balance() == 0
        assert whitelisted_manager.account_balance(deployer) == 3 * cost

        events = whitelisted_manager.events(EventType.WITHDRAW)
        assert events[0].args == {"amount": 3 * cost, "owner": deployer}

    def test_withdraw_empty_balance(self, manager, deployer):
        assert manager.withdraw(deployer) == 0
        assert len(manager.events(EventType.WITHDRAW)) == 1

    def test_withdraw_not_owner(self, whitelisted_manager, minter):
        whitelisted_manager.mint(minter, 1, whitelisted_manager.cost())

        with pytest.raises(NotOwnerError):
            whitelisted_manager.withdraw(minter)
        assert whitelisted_manager.contract_balance() == whitelisted_manager.cost()

    def test_transfer_ownership(self, manager, deployer, other):
        manager.transfer_ownership(deployer, other)

        assert manager.owner() == other
        with pytest.raises(NotOwnerError):
            manager.set_paused(deployer, True)
        manager.set_paused(other, True)

        event = manager.events(EventType.OWNERSHIP_TRANSFERRED)[-1]
        assert event.args == {"previous_owner": deployer, "new_owner": other}

    def test_transfer_to_zero_address(self, manager, deployer):
        with pytest.raises(InvalidAddressError, match="new owner is the zero address"):
            manager.transfer_ownership(deployer, ZERO_ADDRESS)

        assert manager.owner() == deployer
        assert manager.get_statistics()["rejections_by_code"] == {"INVALID_NEW_OWNER": 1}

    def test_transfer_to_zero_address_not_owner(self, manager, deployer, minter):
        with pytest.raises(NotOwnerError):
            manager.transfer_ownership(minter, ZERO_ADDRESS)
        assert manager.owner() == deployer

    def test_stats_count_not_owner(self, manager, minter):
        with pytest.raises(NotOwnerError):
            manager.withdraw(minter)
        assert manager.get_statistics()["rejections_by_code"] == {"NOT_OWNER": 1}


class TestEvents:
    """Test event subscription."""

    def test_subscribe_receives_committed_events(self, whitelisted_manager, minter):
        received = []
        whitelisted_manager.subscribe(received.append)

        whitelisted_manager.mint(minter, 2, 2 * whitelisted_manager.cost())

        assert [event.event for event in received] == [EventType.MINT]
        assert received[0].args["token_id"] == 2

    def test_subscribe_filtered(self, whitelisted_manager, deployer, minter):
        received = []
        whitelisted_manager.subscribe(received.append, EventType.WITHDRAW)

        whitelisted_manager.mint(minter, 1, whitelisted_manager.cost())
        whitelisted_manager.withdraw(deployer)

        assert [event.event for event in received] == [EventType.WITHDRAW]

    def test_rejection_emits_nothing(self, manager, minter):
        received = []
        manager.subscribe(received.append)

        with pytest.raises(NotWhitelistedError):
            manager.mint(minter, 1, manager.cost())
        assert received == []

    def test_unsubscribe(self, whitelisted_manager, minter):
        received = []
        whitelisted_manager.subscribe(received.append)
        whitelisted_manager.unsubscribe(received.append)

        whitelisted_manager.mint(minter, 1, whitelisted_manager.cost())
        assert received == []

    def test_failing_listener_does_not_undo_commit(self, whitelisted_manager, minter):
        def broken(event):
            raise RuntimeError("listener failure")

        whitelisted_manager.subscribe(broken)
        assert whitelisted_manager.mint(minter, 1, whitelisted_manager.cost()) == [1]
        assert whitelisted_manager.total_supply() == 1


class TestConnectedCollection:
    """Test the caller-bound handle."""

    def test_mint_defaults_to_cost(self, whitelisted_manager, minter):
        buyer = whitelisted_manager.connect(minter)

        assert buyer.mint(3) == [1, 2, 3]
        assert whitelisted_manager.contract_balance() == 3 * whitelisted_manager.cost()
        assert buyer.wallet() == [1, 2, 3]
        assert buyer.balance() == 3

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_mint_non_positive_quantity(self, whitelisted_manager, minter, quantity):
        with pytest.raises(InvalidQuantityError, match="Mint amount must be greater than 0"):
            whitelisted_manager.connect(minter).mint(quantity)

        assert whitelisted_manager.contract_balance() == 0
        assert whitelisted_manager.connect(minter).preview_mint(quantity).rejected_by == "mint_quantity"

    def test_explicit_payment(self, whitelisted_manager, minter):
        with pytest.raises(InsufficientPaymentError):
            whitelisted_manager.connect(minter).mint(1, payment=0)

    def test_owner_handle(self, manager, deployer, minter):
        owner = manager.connect(deployer)

        assert owner.is_owner()
        assert not manager.connect(minter).is_owner()
        assert owner.add_to_whitelist(minter) is True
        owner.set_paused(True)
        assert manager.paused() is True

    def test_preview(self, manager, minter):
        assert manager.connect(minter).preview_mint(1).rejected_by == "whitelist"

    def test_transfer_and_withdraw(self, manager, deployer, other):
        owner = manager.connect(deployer)
        assert owner.withdraw() == 0
        owner.transfer_ownership(other)
        assert manager.connect(other).is_owner()

    def test_invalid_account(self, manager):
        with pytest.raises(InvalidAddressError):
            manager.connect("0x1234")


class TestPersistence:
    """Test that committed state survives reopening."""

    def test_mutations_persisted(self, stored_manager, temp_storage_dir, deployer, minter):
        stored_manager.add_to_whitelist(deployer, minter)
        stored_manager.mint(minter, 2, 2 * stored_manager.cost())
        stored_manager.set_paused(deployer, True)

        reopened = CollectionManager.open(temp_storage_dir)
        assert reopened.wallet_of_owner(minter) == [1, 2]
        assert reopened.paused() is True
        assert reopened.is_whitelisted(minter)
        assert len(reopened.events()) == 2

    def test_rejection_not_persisted(self, stored_manager, temp_storage_dir, minter):
        with pytest.raises(NotWhitelistedError):
            stored_manager.mint(minter, 1, stored_manager.cost())

        assert CollectionManager.open(temp_storage_dir).total_supply() == 0

    def test_reload(self, stored_manager, temp_storage_dir, deployer, minter):
        other_handle = CollectionManager.open(temp_storage_dir)
        other_handle.add_to_whitelist(deployer, minter)

        assert not stored_manager.is_whitelisted(minter)
        stored_manager.reload()
        assert stored_manager.is_whitelisted(minter)

    def test_handles_on_one_directory_never_reuse_ids(self, stored_manager, temp_storage_dir,
                                                      minter, other, clock):
        first = CollectionManager.open(
            temp_storage_dir, checker=AdmissionChecker({"require_whitelist": False}), clock=clock
        )
        second = CollectionManager.open(
            temp_storage_dir, checker=AdmissionChecker({"require_whitelist": False}), clock=clock
        )
        cost = first.cost()

        assert first.mint(minter, 1, cost) == [1]
        assert second.mint(other, 2, 2 * cost) == [2, 3]
        assert first.mint(minter, 1, cost) == [4]

        reopened = CollectionManager.open(temp_storage_dir)
        assert reopened.wallet_of_owner(minter) == [1, 4]
        assert reopened.wallet_of_owner(other) == [2, 3]
        assert reopened.contract_balance() == 4 * cost
        assert len(reopened.events(EventType.MINT)) == 3

    def test_rejection_sees_other_handle_commits(self, stored_manager, temp_storage_dir,
                                                 deployer, minter, clock):
        other_handle = CollectionManager.open(temp_storage_dir, clock=clock)
        other_handle.set_paused(deployer, True)
        stored_manager.add_to_whitelist(deployer, minter)

        with pytest.raises(MintingPausedError):
            stored_manager.mint(minter, 1, stored_manager.cost())
        assert CollectionManager.open(temp_storage_dir).is_whitelisted(minter)

    def test_statistics_include_storage(self, stored_manager):
        stats = stored_manager.get_statistics()

        assert stats["storage"]["deployed"] is True
        assert stats["lock"]["name"] == "collection:DP"
        assert stats["admission"]["registered_rules"][0] == "pause"

    def test_checker_override_on_open(self, stored_manager, temp_storage_dir, minter, clock):
        reopened = CollectionManager.open(
            temp_storage_dir, checker=AdmissionChecker({"require_whitelist": False}), clock=clock
        )
        assert reopened.mint(minter, 1, reopened.cost()) == [1]
