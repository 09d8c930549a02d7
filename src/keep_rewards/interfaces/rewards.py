"""RewardAggregator protocol - group lifecycle and beneficiary rewards."""

from __future__ import annotations

from typing import Protocol

from keep_rewards.models.records import (
    CreatedGroup,
    Group,
    GroupStatus,
    RewardEntry,
    RewardWithdrawal,
    TxReceipt,
)


class RewardAggregator(Protocol):
    """Reconstructs beacon groups and the rewards their members await."""

    async def get_all_created_groups(self) -> list[CreatedGroup]:
        """Ordered replay of group creation. Position is the group index."""
        ...

    async def group_status(self, group: CreatedGroup) -> GroupStatus:
        """Stale check first; termination only for non-stale groups."""
        ...

    async def get_groups(self, timeout: float | None = None) -> list[Group]:
        ...

    async def find_keep_random_beacon_rewards_for_beneficiary(
        self, beneficiary: str, timeout: float | None = None
    ) -> list[RewardEntry]:
        ...

    async def get_withdrawn_rewards_for_beneficiary(
        self, beneficiary: str
    ) -> list[RewardWithdrawal]:
        ...

    async def withdraw_group_member_rewards(
        self, member: str, group_index: int
    ) -> TxReceipt:
        ...
