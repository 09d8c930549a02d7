"""Shared fixtures for keep_rewards tests."""

from __future__ import annotations

import pytest
from eth_utils import to_checksum_address
from pytest_metadata.plugin import metadata_key

from keep_rewards.beacon.rewards import GroupRewardAggregator
from keep_rewards.chain.registry import (
    BEACON_OPERATOR,
    BEACON_STATISTICS,
    CONTRACT_TABLE,
    KEEP_TOKEN,
    TOKEN_STAKING,
    ContractRegistry,
)
from keep_rewards.models.config import AppConfig, ContractSource, EventsConfig, QueryConfig
from keep_rewards.staking.indexer import DelegationIndexer

from tests.mocks import MockLedger


def address(n: int) -> str:
    """Deterministic checksummed test address."""
    return to_checksum_address("0x" + f"{n:040x}")


KEEP_TOKEN_ADDRESS = to_checksum_address("0x85eee30c52b0b379b046fb0f85f4f3dc3009afec")
TOKEN_STAKING_ADDRESS = to_checksum_address("0x1293a54e160d1cd7075487898d65266081a15458")
BEACON_OPERATOR_ADDRESS = to_checksum_address("0xdf708431162ba247ddae362d2c919e0fbafcf9de")
BEACON_STATISTICS_ADDRESS = to_checksum_address("0x70f2202d85a4f3a8f8e3c3f4e63fb7a8e1e29cbe")

CONTRACT_ADDRESSES = {
    KEEP_TOKEN: KEEP_TOKEN_ADDRESS,
    TOKEN_STAKING: TOKEN_STAKING_ADDRESS,
    BEACON_OPERATOR: BEACON_OPERATOR_ADDRESS,
    BEACON_STATISTICS: BEACON_STATISTICS_ADDRESS,
}

OWNER = address(0x0A)
AUTHORIZER = address(0xA0)
OPERATOR_A = address(0x1A)
OPERATOR_B = address(0x1B)
OPERATOR_C = address(0x1C)
BENEFICIARY_X = address(0xBE)
BENEFICIARY_Y = address(0xBF)
SENDER = address(0x5E)

MINIMUM_STAKE = 100_000 * 10**18
INITIALIZATION_PERIOD = 43_200
UNDELEGATION_PERIOD = 7_776_000


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add ledger info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Ledger"] = "In-memory mock ledger"
    for name, addr in CONTRACT_ADDRESSES.items():
        meta[name] = addr


def pytest_html_results_summary(prefix, summary, postfix):
    """List the mocked contract addresses in the report summary."""
    rows = "".join(f"{name}: {addr}<br/>" for name, addr in CONTRACT_ADDRESSES.items())
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        f"<strong>Mock contracts</strong><br/>{rows}"
        "</div>"
    )


def make_test_config(**overrides) -> AppConfig:
    """Build an AppConfig pointing at the mock contracts."""
    defaults = dict(
        rpc_url="http://127.0.0.1:8545",
        chain_id=1101,
        start_block=0,
        from_address=SENDER,
        events=EventsConfig(page_size=10_000, max_retries=3, retry_backoff=0),
        query=QueryConfig(max_concurrency=4, timeout=None),
        contracts={
            name: ContractSource(address=addr) for name, addr in CONTRACT_ADDRESSES.items()
        },
    )
    defaults.update(overrides)
    return AppConfig(**defaults)


def make_ledger(latest_block: int = 1_000) -> MockLedger:
    """MockLedger with every contract in the table deployed."""
    ledger = MockLedger(latest_block=latest_block)
    for spec in CONTRACT_TABLE:
        ledger.deploy(spec.name, CONTRACT_ADDRESSES[spec.name], spec.abi)
    staking = ledger.contract(TOKEN_STAKING)
    staking.on("minimumStake", MINIMUM_STAKE)
    staking.on("initializationPeriod", INITIALIZATION_PERIOD)
    staking.on("undelegationPeriod", UNDELEGATION_PERIOD)
    return ledger


@pytest.fixture
def test_config():
    """Default AppConfig for tests."""
    return make_test_config()


@pytest.fixture
def ledger():
    return make_ledger()


@pytest.fixture
async def registry(ledger, test_config):
    """Initialized ContractRegistry over the mock ledger."""
    return await ContractRegistry.from_config(test_config, ledger).initialize()


@pytest.fixture
def indexer(registry):
    return DelegationIndexer(registry, max_concurrency=4)


@pytest.fixture
def aggregator(registry, indexer):
    return GroupRewardAggregator(registry, indexer, max_concurrency=4)
