"""Group reward aggregator - beacon groups and the rewards members await."""

from __future__ import annotations

import logging

from keep_rewards.addresses import same_address, short
from keep_rewards.beacon.groups import GroupMetadataCache, dedupe_members, replay_created_groups
from keep_rewards.chain.registry import ContractRegistry
from keep_rewards.concurrency import bounded_map, with_timeout
from keep_rewards.interfaces.indexer import DelegationIndex
from keep_rewards.models.records import (
    CreatedGroup,
    Group,
    GroupStatus,
    RewardEntry,
    RewardWithdrawal,
    TxReceipt,
)

log = logging.getLogger(__name__)


class GroupRewardAggregator:
    """Reconstructs beacon groups and per-beneficiary unclaimed rewards.

    Nothing is kept between calls: every query replays group creation from
    the event history and reads lifecycle and reward state live.
    """

    def __init__(
        self,
        registry: ContractRegistry,
        indexer: DelegationIndex,
        max_concurrency: int = 8,
        timeout: float | None = None,
    ) -> None:
        self._registry = registry
        self._indexer = indexer
        self._max_concurrency = max_concurrency
        self._timeout = timeout

    # ── Groups ──────────────────────────────────────────────

    async def get_all_created_groups(self) -> list[CreatedGroup]:
        events = await self._registry.beacon_operator.group_created_events()
        groups = replay_created_groups(events)
        log.debug("Replayed %d created groups", len(groups))
        return groups

    async def group_status(self, group: CreatedGroup) -> GroupStatus:
        beacon = self._registry.beacon_operator
        if await beacon.is_stale_group(group.public_key):
            return GroupStatus(is_stale=True, is_terminated=False)
        terminated = await beacon.is_group_terminated(group.group_index)
        return GroupStatus(is_stale=False, is_terminated=terminated)

    async def get_groups(self, timeout: float | None = None) -> list[Group]:
        """Every created group with its members and lifecycle state."""
        return await with_timeout(
            self._groups(),
            self._timeout if timeout is None else timeout,
            "get_groups",
        )

    async def _groups(self) -> list[Group]:
        beacon = self._registry.beacon_operator
        created = await self.get_all_created_groups()

        async def _one(group: CreatedGroup) -> Group:
            members = await beacon.get_group_members(group.public_key)
            status = await self.group_status(group)
            return Group(
                group_index=group.group_index,
                public_key=group.public_key,
                is_stale=status.is_stale,
                is_terminated=status.is_terminated,
                members=tuple(dedupe_members(members)),
            )

        return await bounded_map(_one, created, self._max_concurrency)

    # ── Rewards ─────────────────────────────────────────────

    async def find_keep_random_beacon_rewards_for_beneficiary(
        self, beneficiary: str, timeout: float | None = None
    ) -> list[RewardEntry]:
        """Unclaimed group member rewards payable to `beneficiary`.

        Only members whose beneficiary matches and whose awaiting reward is
        above zero produce an entry. Entries are ordered by group index, then
        by first appearance of the member in its group.
        """
        return await with_timeout(
            self._find_rewards(beneficiary),
            self._timeout if timeout is None else timeout,
            "find_keep_random_beacon_rewards_for_beneficiary",
        )

    async def _find_rewards(self, beneficiary: str) -> list[RewardEntry]:
        beacon = self._registry.beacon_operator
        statistics = self._registry.beacon_statistics
        groups = await self.get_all_created_groups()
        metadata = GroupMetadataCache(self.group_status)

        async def _group_rewards(group: CreatedGroup) -> list[RewardEntry]:
            members = dedupe_members(await beacon.get_group_members(group.public_key))
            entries: list[RewardEntry] = []
            for member in members:
                member_beneficiary = await self._indexer.beneficiary_of(member)
                if not same_address(member_beneficiary, beneficiary):
                    continue
                reward = await statistics.awaiting_rewards(member, group.group_index)
                if reward <= 0:
                    continue
                status = await metadata.get(group)
                entries.append(RewardEntry(
                    group_index=group.group_index,
                    group_public_key=group.public_key,
                    is_stale=status.is_stale,
                    is_terminated=status.is_terminated,
                    operator_address=member,
                    beneficiary_address=member_beneficiary,
                    reward=reward,
                ))
            return entries

        per_group = await bounded_map(_group_rewards, groups, self._max_concurrency)
        entries = [entry for group_entries in per_group for entry in group_entries]
        log.info(
            "Beneficiary %s: %d reward entries across %d groups",
            short(beneficiary), len(entries), len(groups),
        )
        return entries

    async def get_withdrawn_rewards_for_beneficiary(
        self, beneficiary: str
    ) -> list[RewardWithdrawal]:
        events = await self._registry.beacon_operator.rewards_withdrawn_events(beneficiary)
        return [
            RewardWithdrawal(
                beneficiary=ev["beneficiary"],
                operator=ev["operator"],
                amount=int(ev["amount"]),
                group_index=int(ev["groupIndex"]),
                block_number=ev.block_number,
                transaction_hash=ev.transaction_hash,
            )
            for ev in events
        ]

    # ── Commands ────────────────────────────────────────────

    async def withdraw_group_member_rewards(self, member: str, group_index: int) -> TxReceipt:
        return await self._registry.beacon_operator.withdraw_group_member_rewards(
            member, group_index,
        )
