"""Contract facade: calls, transactions and paginated event history."""

from __future__ import annotations

from dataclasses import replace

import pytest

from keep_rewards.chain.abi import BEACON_OPERATOR_ABI, KEEP_TOKEN_ABI, TOKEN_STAKING_ABI
from keep_rewards.chain.codec import ContractCodec
from keep_rewards.chain.facade import (
    BeaconOperatorFacade,
    KeepTokenFacade,
    TokenStakingFacade,
)
from keep_rewards.errors import ExecutionRevertedError, ProviderError
from keep_rewards.models.config import ContractDescriptor

from tests.conftest import (
    BEACON_OPERATOR_ADDRESS,
    BENEFICIARY_X,
    BENEFICIARY_Y,
    KEEP_TOKEN_ADDRESS,
    OPERATOR_A,
    OPERATOR_B,
    OWNER,
    TOKEN_STAKING_ADDRESS,
    make_ledger,
)
from tests.factories import make_raw_log


def _staking(ledger, **kwargs) -> TokenStakingFacade:
    descriptor = ContractDescriptor(
        "TokenStaking", tuple(TOKEN_STAKING_ABI), TOKEN_STAKING_ADDRESS, start_block=0,
    )
    kwargs.setdefault("retry_backoff", 0)
    return TokenStakingFacade(descriptor, ledger, **kwargs)


def _beacon(ledger, **kwargs) -> BeaconOperatorFacade:
    descriptor = ContractDescriptor(
        "KeepRandomBeaconOperator", tuple(BEACON_OPERATOR_ABI), BEACON_OPERATOR_ADDRESS,
    )
    kwargs.setdefault("retry_backoff", 0)
    return BeaconOperatorFacade(descriptor, ledger, **kwargs)


# ── Codec ────────────────────────────────────────────────────────


def test_codec_rejects_wrong_argument_count():
    codec = ContractCodec(TOKEN_STAKING_ABI)
    with pytest.raises(TypeError):
        codec.encode_call("authorizerOf", ())


def test_codec_topic_filters_trim_trailing_wildcards():
    codec = ContractCodec(TOKEN_STAKING_ABI)
    topics = codec.event_topics("OperatorStaked", {"operator": OPERATOR_A})
    assert len(topics) == 2
    assert topics[0] == codec.event_topic("OperatorStaked")

    # Filtering on a later field keeps a wildcard for the earlier one
    topics = codec.event_topics("OperatorStaked", {"beneficiary": BENEFICIARY_X})
    assert len(topics) == 3
    assert topics[1] is None


def test_codec_rejects_filter_on_unindexed_field():
    codec = ContractCodec(TOKEN_STAKING_ABI)
    with pytest.raises(ValueError, match="value"):
        codec.event_topics("Staked", {"value": 1})


def test_codec_decode_log_checks_signature():
    codec = ContractCodec(TOKEN_STAKING_ABI)
    raw = make_raw_log(TOKEN_STAKING_ABI, "Staked", {"from": OPERATOR_A, "value": 5})
    with pytest.raises(ValueError, match="not a Undelegated event"):
        codec.decode_log("Undelegated", raw)

    record = codec.decode_log("Staked", raw)
    assert record["from"] == OPERATOR_A
    assert record["value"] == 5
    assert list(record.values) == ["from", "value"]


# ── Calls ────────────────────────────────────────────────────────


async def test_call_decodes_single_output():
    ledger = make_ledger()
    ledger.contract("KeepToken").on("balanceOf", lambda owner: 42 if owner == OWNER else 0)
    descriptor = ContractDescriptor("KeepToken", tuple(KEEP_TOKEN_ABI), KEEP_TOKEN_ADDRESS)
    token = KeepTokenFacade(descriptor, ledger)

    assert await token.balance_of(OWNER) == 42
    assert await token.balance_of(OPERATOR_A) == 0
    assert ledger.calls_to("balanceOf") == [(OWNER,), (OPERATOR_A,)]


async def test_call_decodes_multiple_outputs():
    ledger = make_ledger()
    ledger.contract("TokenStaking").on("getDelegationInfo", (1_000, 1_600_000_000, 0))
    info = await _staking(ledger).get_delegation_info(OPERATOR_A)
    assert info.amount == 1_000
    assert info.created_at == 1_600_000_000
    assert info.undelegated_at == 0


async def test_call_revert_propagates():
    ledger = make_ledger()
    ledger.reverts["authorizerOf"] = "Unknown operator"
    with pytest.raises(ExecutionRevertedError) as exc_info:
        await _staking(ledger).authorizer_of(OPERATOR_A)
    assert exc_info.value.reason == "Unknown operator"


async def test_call_on_codeless_address_is_provider_error():
    ledger = make_ledger()
    ledger.raw_results["beneficiaryOf"] = b""
    with pytest.raises(ProviderError, match=r"undecodable result \(0 bytes\)"):
        await _staking(ledger).beneficiary_of(OPERATOR_A)


async def test_send_transaction_merges_default_sender():
    ledger = make_ledger()
    staking = _staking(ledger, tx_options={"from": OWNER})

    receipt = await staking.authorize_operator_contract(OPERATOR_A, BEACON_OPERATOR_ADDRESS)
    assert receipt.success
    assert len(ledger.sent) == 1
    name, method, args, opts = ledger.sent[0]
    assert (name, method) == ("TokenStaking", "authorizeOperatorContract")
    assert args == (OPERATOR_A, BEACON_OPERATOR_ADDRESS)
    assert opts == {"from": OWNER}


# ── Events ───────────────────────────────────────────────────────


async def test_events_merged_in_canonical_order_across_pages():
    """Pages come back newest-first; the facade returns ascending positions."""
    ledger = make_ledger(latest_block=1_000)
    staking_contract = ledger.contract("TokenStaking")
    for i, block in enumerate([950, 50, 420, 420, 999, 1_000]):
        staking_contract.emit("Staked", block, log_index=i, **{"from": OPERATOR_A, "value": i})

    events = await _staking(ledger, page_size=100).staked_events()

    assert [e.position for e in events] == sorted(e.position for e in events)
    assert len(events) == 6
    # Blocks 0..1000 in 100-block pages
    assert len(ledger.log_requests) == 11
    assert ledger.log_requests[0] == ("TokenStaking", 0, 99)
    assert ledger.log_requests[-1] == ("TokenStaking", 1_000, 1_000)


async def test_events_start_at_contract_start_block():
    ledger = make_ledger(latest_block=500)
    descriptor = ContractDescriptor(
        "TokenStaking", tuple(TOKEN_STAKING_ABI), TOKEN_STAKING_ADDRESS, start_block=300,
    )
    staking = TokenStakingFacade(descriptor, ledger)
    await staking.staked_events()
    assert ledger.log_requests == [("TokenStaking", 300, 500)]


async def test_failed_page_is_retried():
    ledger = make_ledger()
    ledger.contract("TokenStaking").emit("Staked", 10, **{"from": OPERATOR_A, "value": 1})
    ledger.log_failures = [ProviderError("connection reset")]

    events = await _staking(ledger, max_retries=3).staked_events()

    assert len(events) == 1
    assert len(ledger.log_requests) == 2


async def test_page_failure_after_retries_aborts():
    ledger = make_ledger()
    ledger.log_failures = [ProviderError("connection reset")] * 4

    with pytest.raises(ProviderError, match="connection reset"):
        await _staking(ledger, max_retries=3).staked_events()
    assert len(ledger.log_requests) == 4


async def test_oversized_page_is_split():
    ledger = make_ledger(latest_block=999)
    staking_contract = ledger.contract("TokenStaking")
    for i, block in enumerate([10, 20, 600, 700]):
        staking_contract.emit("Staked", block, log_index=0, **{"from": OPERATOR_A, "value": i})
    ledger.max_logs_per_request = 2

    events = await _staking(ledger, page_size=1_000).staked_events()

    assert [e.block_number for e in events] == [10, 20, 600, 700]
    assert ledger.log_requests == [
        ("TokenStaking", 0, 999),
        ("TokenStaking", 0, 499),
        ("TokenStaking", 500, 999),
    ]


async def test_delegation_events_merge_all_lifecycle_events():
    ledger = make_ledger()
    c = ledger.contract("TokenStaking")
    c.emit("Undelegated", 30, operator=OPERATOR_A, undelegatedAt=1_700_000_000)
    c.emit("Staked", 10, log_index=0, **{"from": OPERATOR_A, "value": 7})
    c.emit("StakeDelegated", 10, log_index=1, owner=OWNER, operator=OPERATOR_A)
    c.emit(
        "OperatorStaked", 10, log_index=2,
        operator=OPERATOR_A, beneficiary=BENEFICIARY_X, authorizer=OWNER, value=7,
    )

    events = await _staking(ledger).delegation_events()
    assert [e.event for e in events] == [
        "Staked", "StakeDelegated", "OperatorStaked", "Undelegated",
    ]


async def test_withdrawn_events_filtered_by_indexed_beneficiary():
    ledger = make_ledger()
    c = ledger.contract("KeepRandomBeaconOperator")
    c.emit(
        "GroupMemberRewardsWithdrawn", 10,
        beneficiary=BENEFICIARY_X, operator=OPERATOR_A, amount=5, groupIndex=0,
    )
    c.emit(
        "GroupMemberRewardsWithdrawn", 11,
        beneficiary=BENEFICIARY_Y, operator=OPERATOR_B, amount=9, groupIndex=1,
    )

    events = await _beacon(ledger).rewards_withdrawn_events(BENEFICIARY_X.lower())
    assert len(events) == 1
    assert events[0]["operator"] == OPERATOR_A


async def test_undecodable_log_is_provider_error():
    ledger = make_ledger()
    c = ledger.contract("TokenStaking")
    raw = c.emit("Staked", 10, **{"from": OPERATOR_A, "value": 7})
    c.logs[-1] = replace(raw, data=raw.data[:8])

    with pytest.raises(ProviderError, match="Staked: undecodable log"):
        await _staking(ledger).staked_events()
