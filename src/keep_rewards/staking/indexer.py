"""Delegation indexer - delegation relationships and authorization status."""

from __future__ import annotations

import logging

from keep_rewards.addresses import normalize_address, same_address, short
from keep_rewards.chain.registry import ContractRegistry
from keep_rewards.concurrency import bounded_map, with_timeout
from keep_rewards.models.records import Delegation, DelegationInfo, TxReceipt
from keep_rewards.staking.replay import CREATION_EVENTS, replay_delegations

log = logging.getLogger(__name__)


class DelegationIndexer:
    """Resolves delegations through live TokenStaking reads and event scans.

    Live reads always reflect the latest ledger state. Per-operator reads
    are independent, so they are fanned out up to `max_concurrency` at a
    time; results keep input order.
    """

    def __init__(
        self,
        registry: ContractRegistry,
        max_concurrency: int = 8,
        timeout: float | None = None,
    ) -> None:
        self._registry = registry
        self._max_concurrency = max_concurrency
        self._timeout = timeout

    # ── Live reads ──────────────────────────────────────────

    async def authorizer_of(self, operator: str) -> str:
        return await self._registry.token_staking.authorizer_of(operator)

    async def beneficiary_of(self, operator: str) -> str:
        return await self._registry.token_staking.beneficiary_of(operator)

    async def owner_of(self, operator: str) -> str:
        return await self._registry.token_staking.owner_of(operator)

    async def operators_of(self, owner: str) -> list[str]:
        return await self._registry.token_staking.operators_of(owner)

    async def get_delegation_info(self, operator: str) -> DelegationInfo:
        return await self._registry.token_staking.get_delegation_info(operator)

    async def get_delegations(
        self, operators: list[str], timeout: float | None = None
    ) -> list[Delegation]:
        """Delegation info + beneficiary + authorizer for each operator."""
        staking = self._registry.token_staking

        async def _one(operator: str) -> Delegation:
            info = await staking.get_delegation_info(operator)
            beneficiary = await staking.beneficiary_of(operator)
            authorizer = await staking.authorizer_of(operator)
            return Delegation(
                operator=operator,
                amount=info.amount,
                created_at=info.created_at,
                undelegated_at=info.undelegated_at,
                beneficiary=beneficiary,
                authorizer=authorizer,
            )

        return await with_timeout(
            bounded_map(_one, list(operators), self._max_concurrency),
            self._timeout if timeout is None else timeout,
            "get_delegations",
        )

    async def is_authorized_for_keep_random_beacon(self, operator: str) -> bool:
        beacon = self._registry.beacon_operator
        return await self._registry.token_staking.is_authorized_for_operator(
            operator, beacon.address,
        )

    # ── History scans ───────────────────────────────────────

    async def get_authorizer_operators(
        self, authorizer: str, timeout: float | None = None
    ) -> list[str]:
        """Operators whose current authorizer is `authorizer`.

        Every Staked event since the start block names a candidate; the
        candidate's authorizer is then read live.
        """
        return await with_timeout(
            self._authorizer_operators(authorizer),
            self._timeout if timeout is None else timeout,
            "get_authorizer_operators",
        )

    async def _authorizer_operators(self, authorizer: str) -> list[str]:
        staking = self._registry.token_staking
        staked = await staking.staked_events()

        candidates: dict[str, str] = {}
        for ev in staked:
            candidates.setdefault(normalize_address(ev["from"]), ev["from"])
        operators = list(candidates.values())

        authorizers = await bounded_map(staking.authorizer_of, operators, self._max_concurrency)
        matched = [
            op for op, auth in zip(operators, authorizers) if same_address(auth, authorizer)
        ]
        log.info(
            "Authorizer %s: %d of %d staked operators",
            short(authorizer), len(matched), len(operators),
        )
        return matched

    async def reconstruct_delegations(self, timeout: float | None = None) -> list[Delegation]:
        """Replay the full staking event history into delegation records."""
        return await with_timeout(
            self._reconstruct(),
            self._timeout if timeout is None else timeout,
            "reconstruct_delegations",
        )

    async def _reconstruct(self) -> list[Delegation]:
        events = await self._registry.token_staking.delegation_events()
        blocks = sorted({e.block_number for e in events if e.event in CREATION_EVENTS})
        provider = self._registry.provider
        times = await bounded_map(provider.block_timestamp, blocks, self._max_concurrency)
        delegations = replay_delegations(events, dict(zip(blocks, times)))
        log.info(
            "Replayed %d staking events into %d delegations",
            len(events), len(delegations),
        )
        return delegations

    # ── Commands ────────────────────────────────────────────

    async def authorize_keep_random_beacon_operator_contract(self, operator: str) -> TxReceipt:
        """Grant the beacon operator contract access to the operator's stake.

        Only the operator's authorizer may do this; the ledger enforces it.
        """
        beacon = self._registry.beacon_operator
        return await self._registry.token_staking.authorize_operator_contract(
            operator, beacon.address,
        )
