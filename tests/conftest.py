"""
Pytest configuration and fixtures for storefront tests.
"""

import tempfile
import threading

import pytest

from admission.core import AdmissionChecker
from registry.manager import CollectionManager
from registry.schema import CollectionConfig
from registry.units import parse_units


DEPLOYER = "0x" + "f3" * 20
MINTER = "0x" + "70" * 20
OTHER = "0x" + "3c" * 20

BASE_URI = "ipfs://QmQ2jnDYecFhrf3asEWjyjZRX1pZSsNWG3qHzmNDvXa9qg/"
COST = parse_units("10", "ether")
MINT_OPENS_AT = 1_700_000_000


class FakeClock:
    """Controllable clock returning integer Unix seconds."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


@pytest.fixture
def deployer():
    return DEPLOYER


@pytest.fixture
def minter():
    return MINTER


@pytest.fixture
def other():
    return OTHER


@pytest.fixture
def temp_storage_dir():
    """Create temporary storage directory."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def clock():
    """Clock positioned one minute after the mint window opens."""
    return FakeClock(MINT_OPENS_AT + 60)


@pytest.fixture
def collection_config():
    """Deployment parameters matching the reference collection."""
    return CollectionConfig(
        name="Dapp Punks",
        symbol="DP",
        cost=COST,
        max_supply=25,
        allow_minting_on=MINT_OPENS_AT,
        base_uri=BASE_URI,
    )


@pytest.fixture
def manager(collection_config, clock):
    """In-memory collection deployed by DEPLOYER."""
    return CollectionManager.deploy(collection_config, DEPLOYER, clock=clock)


@pytest.fixture
def stored_manager(collection_config, clock, temp_storage_dir):
    """Collection deployed into a temporary storage directory."""
    return CollectionManager.deploy(
        collection_config, DEPLOYER, storage_dir=temp_storage_dir, clock=clock
    )


@pytest.fixture
def whitelisted_manager(manager):
    """Collection with MINTER on the whitelist."""
    manager.add_to_whitelist(DEPLOYER, MINTER)
    return manager


@pytest.fixture
def open_checker():
    """Checker with whitelist gating disabled."""
    return AdmissionChecker({"require_whitelist": False})


class ThreadSafeCounter:
    """Thread-safe counter for testing."""

    def __init__(self, initial_value: int = 0):
        self._value = initial_value
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def get_value(self) -> int:
        with self._lock:
            return self._value


@pytest.fixture
def thread_counter():
    """Create thread-safe counter for testing."""
    return ThreadSafeCounter()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as a concurrency test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
