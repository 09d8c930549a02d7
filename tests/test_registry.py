"""Contract registry: resolution order, address sources, readiness."""

from __future__ import annotations

import json

import pytest

from keep_rewards.chain.abi import TOKEN_STAKING_ABI
from keep_rewards.chain.registry import CONTRACT_TABLE, TOKEN_STAKING, ContractRegistry
from keep_rewards.errors import InitError, NotReadyError
from keep_rewards.models.config import ContractSource

from tests.conftest import (
    CONTRACT_ADDRESSES,
    MINIMUM_STAKE,
    OPERATOR_A,
    SENDER,
    TOKEN_STAKING_ADDRESS,
    UNDELEGATION_PERIOD,
    make_ledger,
    make_test_config,
)


async def test_initialize_resolves_table_in_order(registry):
    assert registry.ready
    names = [d.name for d in registry.descriptors()]
    assert names == [spec.name for spec in CONTRACT_TABLE]
    for d in registry.descriptors():
        assert d.address == CONTRACT_ADDRESSES[d.name]


async def test_initialize_reads_staking_constants(registry, ledger):
    constants = registry.staking_constants
    assert constants.minimum_stake == MINIMUM_STAKE
    assert constants.undelegation_period == UNDELEGATION_PERIOD
    assert len(ledger.calls_to("minimumStake")) == 1


async def test_initialize_is_idempotent(registry, ledger):
    again = await registry.initialize()
    assert again is registry
    assert len(ledger.calls_to("minimumStake")) == 1


async def test_accessors_before_initialize_raise_not_ready():
    registry = ContractRegistry.from_config(make_test_config(), make_ledger())
    assert not registry.ready
    with pytest.raises(NotReadyError):
        registry.token_staking
    with pytest.raises(NotReadyError):
        registry.staking_constants
    with pytest.raises(NotReadyError):
        registry.descriptors()


async def test_missing_address_is_init_error():
    cfg = make_test_config()
    del cfg.contracts["KeepRandomBeaconOperatorStatistics"]
    registry = ContractRegistry.from_config(cfg, make_ledger())

    with pytest.raises(InitError, match="KeepRandomBeaconOperatorStatistics"):
        await registry.initialize()
    assert not registry.ready


async def test_malformed_address_is_init_error():
    cfg = make_test_config()
    cfg.contracts["KeepToken"] = ContractSource(address="0x1234")
    with pytest.raises(InitError, match="Invalid address"):
        await ContractRegistry.from_config(cfg, make_ledger()).initialize()


async def test_unreadable_constants_is_init_error():
    ledger = make_ledger()
    ledger.reverts["minimumStake"] = "no code at address"
    registry = ContractRegistry.from_config(make_test_config(), ledger)

    with pytest.raises(InitError, match="constants"):
        await registry.initialize()
    with pytest.raises(NotReadyError):
        registry.token_staking


async def test_codeless_staking_address_is_init_error():
    ledger = make_ledger()
    ledger.raw_results["minimumStake"] = b""
    registry = ContractRegistry.from_config(make_test_config(), ledger)

    with pytest.raises(InitError, match="undecodable result"):
        await registry.initialize()
    assert not registry.ready


async def test_address_from_truffle_artifact(tmp_path):
    artifact = tmp_path / "TokenStaking.json"
    artifact.write_text(json.dumps({
        "contractName": "TokenStaking",
        "abi": TOKEN_STAKING_ABI,
        "networks": {
            "1": {"address": "0x0000000000000000000000000000000000000001"},
            "1101": {"address": TOKEN_STAKING_ADDRESS.lower()},
        },
    }))
    cfg = make_test_config(chain_id=1101)
    cfg.contracts[TOKEN_STAKING] = ContractSource(artifact=str(artifact), start_block=250)

    registry = await ContractRegistry.from_config(cfg, make_ledger()).initialize()

    staking = registry.token_staking
    assert staking.address == TOKEN_STAKING_ADDRESS
    assert staking.start_block == 250


async def test_bad_artifact_is_init_error(tmp_path):
    artifact = tmp_path / "TokenStaking.json"
    artifact.write_text(json.dumps({"networks": {}}))
    cfg = make_test_config()
    cfg.contracts[TOKEN_STAKING] = ContractSource(artifact=str(artifact))

    with pytest.raises(InitError, match="artifact"):
        await ContractRegistry.from_config(cfg, make_ledger()).initialize()


async def test_start_block_defaults_to_network_start():
    cfg = make_test_config(start_block=77)
    registry = await ContractRegistry.from_config(cfg, make_ledger()).initialize()
    assert {d.start_block for d in registry.descriptors()} == {77}


async def test_transactions_carry_configured_sender(registry, ledger):
    await registry.beacon_operator.withdraw_group_member_rewards(OPERATOR_A, 3)
    assert ledger.sent[0][3] == {"from": SENDER}
