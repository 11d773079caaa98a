"""
Pytest configuration and shared fixtures for deploy-discovery tests.
"""

import pytest

from deploy_discovery.lib.models import Log, Receipt


EVENT_SIGNATURE = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def pad_address(address: str) -> str:
    """Left-pad a 20-byte address into a 32-byte topic."""
    return "0x" + address[2:].rjust(64, "0")


@pytest.fixture
def deployer_wallet():
    """Factory deployer wallet."""
    return "0xC0BF05DE429252699cCFD7aBA2645f640e816257"


@pytest.fixture
def owner_wallet():
    """Sample owner wallet, mixed case as a user would paste it."""
    return "0x681AA2C3266Dd8435411490773f28FE5fa0E5FF7"


@pytest.fixture
def contract_address():
    """Sample deployed contract address."""
    return "0x5fbdb2315678afecb367f032d93f642f64180aa3"


@pytest.fixture
def mock_client_id():
    """Mock thirdweb client ID for testing."""
    return "test-client-id"


@pytest.fixture
def mock_secret_key():
    """Mock thirdweb secret key for testing."""
    return "test-secret-key-12345"


@pytest.fixture
def topic():
    """Turn an address into a 32-byte topic."""
    return pad_address


@pytest.fixture
def make_receipt():
    """
    Build a receipt with the given number of logs.

    `slots` maps (log index, topic index) to a topic value; every log
    starts with an event signature in topic 0 and unset slots up to the
    highest requested index are empty.
    """

    def _make_receipt(log_count, slots=None, tx_hash="0xabc"):
        slots = slots or {}
        logs = []
        for log_index in range(log_count):
            requested = [t for (li, t) in slots if li == log_index]
            topics = [EVENT_SIGNATURE] + [""] * max(requested, default=0)
            for (li, ti), value in slots.items():
                if li == log_index:
                    topics[ti] = value
            logs.append(Log(topics=topics))
        return Receipt(transaction_hash=tx_hash, logs=logs)

    return _make_receipt
