"""Minimal ABIs for the Keep network contracts this package reads.

Subsets of the published keep-core artifacts, limited to the calls and
events the indexer and reward aggregator use. A full Truffle artifact can be
configured per contract instead (see keep_rewards.config).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def _fn(name, inputs, outputs=(), mutability="view"):
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


def _event(name, inputs):
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": n, "type": t, "indexed": indexed} for n, t, indexed in inputs
        ],
    }


KEEP_TOKEN_ABI = [
    _fn("balanceOf", [("owner", "address")], [("", "uint256")]),
]

TOKEN_STAKING_ABI = [
    _fn("authorizerOf", [("_operator", "address")], [("", "address")]),
    _fn("beneficiaryOf", [("_operator", "address")], [("", "address")]),
    _fn("ownerOf", [("_operator", "address")], [("", "address")]),
    _fn("operatorsOf", [("_address", "address")], [("", "address[]")]),
    _fn(
        "getDelegationInfo",
        [("_operator", "address")],
        [("amount", "uint256"), ("createdAt", "uint256"), ("undelegatedAt", "uint256")],
    ),
    _fn(
        "isAuthorizedForOperator",
        [("_operator", "address"), ("_operatorContract", "address")],
        [("", "bool")],
    ),
    _fn(
        "authorizeOperatorContract",
        [("_operator", "address"), ("_operatorContract", "address")],
        mutability="nonpayable",
    ),
    _fn("minimumStake", [], [("", "uint256")]),
    _fn("initializationPeriod", [], [("", "uint256")]),
    _fn("undelegationPeriod", [], [("", "uint256")]),
    _event("Staked", [("from", "address", True), ("value", "uint256", False)]),
    _event(
        "StakeDelegated",
        [("owner", "address", True), ("operator", "address", True)],
    ),
    _event(
        "OperatorStaked",
        [
            ("operator", "address", True),
            ("beneficiary", "address", True),
            ("authorizer", "address", True),
            ("value", "uint256", False),
        ],
    ),
    _event(
        "Undelegated",
        [("operator", "address", True), ("undelegatedAt", "uint256", False)],
    ),
]

BEACON_OPERATOR_ABI = [
    _fn("getGroupMembers", [("groupPubKey", "bytes")], [("members", "address[]")]),
    _fn("isStaleGroup", [("groupPubKey", "bytes")], [("", "bool")]),
    _fn("isGroupTerminated", [("groupIndex", "uint256")], [("", "bool")]),
    _fn(
        "withdrawGroupMemberRewards",
        [("operator", "address"), ("groupIndex", "uint256")],
        mutability="nonpayable",
    ),
    _event(
        "DkgResultSubmittedEvent",
        [
            ("memberIndex", "uint256", False),
            ("groupPubKey", "bytes", False),
            ("misbehaved", "bytes", False),
        ],
    ),
    _event(
        "GroupMemberRewardsWithdrawn",
        [
            ("beneficiary", "address", True),
            ("operator", "address", False),
            ("amount", "uint256", False),
            ("groupIndex", "uint256", False),
        ],
    ),
]

BEACON_STATISTICS_ABI = [
    _fn(
        "awaitingRewards",
        [("operator", "address"), ("groupIndex", "uint256")],
        [("", "uint256")],
    ),
]


def load_artifact(path: str | Path) -> dict[str, Any]:
    """Load a Truffle artifact JSON (must contain an "abi" list)."""
    p = Path(path).expanduser()
    with open(p) as f:
        data = json.load(f)
    if not isinstance(data.get("abi"), list):
        raise ValueError(f"No 'abi' list in {p}")
    return data
