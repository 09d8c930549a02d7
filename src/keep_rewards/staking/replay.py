"""Delegation replay - folds TokenStaking events into Delegation records.

Pure functions only: the same events always produce the same records, so a
replay can be repeated or re-run from scratch at any time.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable, Mapping

from keep_rewards.addresses import normalize_address, short
from keep_rewards.models.events import EventRecord, sort_events
from keep_rewards.models.records import Delegation

log = logging.getLogger(__name__)

# Events whose block timestamp becomes a delegation's created_at
CREATION_EVENTS = frozenset({"Staked", "StakeDelegated", "OperatorStaked"})

_State = dict[str, Delegation]


def _upsert(state: _State, operator: str, ev: EventRecord, timestamps: Mapping[int, int]) -> Delegation:
    key = normalize_address(operator)
    existing = state.get(key)
    if existing is not None:
        return existing
    return Delegation(
        operator=operator,
        amount=0,
        created_at=timestamps.get(ev.block_number, 0),
    )


def _on_staked(state: _State, ev: EventRecord, timestamps: Mapping[int, int]) -> None:
    operator = ev["from"]
    d = _upsert(state, operator, ev, timestamps)
    state[normalize_address(operator)] = replace(d, amount=int(ev["value"]))


def _on_stake_delegated(state: _State, ev: EventRecord, timestamps: Mapping[int, int]) -> None:
    operator = ev["operator"]
    d = _upsert(state, operator, ev, timestamps)
    state[normalize_address(operator)] = replace(d, owner=ev["owner"])


def _on_operator_staked(state: _State, ev: EventRecord, timestamps: Mapping[int, int]) -> None:
    operator = ev["operator"]
    d = _upsert(state, operator, ev, timestamps)
    state[normalize_address(operator)] = replace(
        d,
        beneficiary=ev["beneficiary"],
        authorizer=ev["authorizer"],
        amount=int(ev["value"]),
    )


def _on_undelegated(state: _State, ev: EventRecord, timestamps: Mapping[int, int]) -> None:
    key = normalize_address(ev["operator"])
    d = state.get(key)
    if d is None:
        log.debug(
            "Undelegation for unknown operator %s at block %d",
            short(ev["operator"]), ev.block_number,
        )
        return
    state[key] = replace(d, undelegated_at=int(ev["undelegatedAt"]))


_HANDLERS: dict[str, Callable[[_State, EventRecord, Mapping[int, int]], None]] = {
    "Staked": _on_staked,
    "StakeDelegated": _on_stake_delegated,
    "OperatorStaked": _on_operator_staked,
    "Undelegated": _on_undelegated,
}


def replay_delegations(
    events: Iterable[EventRecord],
    timestamps: Mapping[int, int] | None = None,
) -> list[Delegation]:
    """Fold staking events into one Delegation per operator.

    Events are applied in (block_number, log_index) order whatever order
    they are given in. Delegations are never removed: an undelegation only
    sets undelegated_at. `timestamps` maps block numbers to block times and
    supplies created_at; unknown blocks give 0.

    Returns delegations in the order their operators first appeared.
    """
    timestamps = timestamps or {}
    state: _State = {}
    for ev in sort_events(list(events)):
        handler = _HANDLERS.get(ev.event)
        if handler is None:
            continue
        handler(state, ev, timestamps)
    return list(state.values())
