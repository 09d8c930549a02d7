"""Group replay and per-call group metadata."""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable

from keep_rewards.addresses import normalize_address
from keep_rewards.models.events import EventRecord, sort_events
from keep_rewards.models.records import CreatedGroup, GroupStatus


def replay_created_groups(events: Iterable[EventRecord]) -> list[CreatedGroup]:
    """Assign group indices by position in canonical event order.

    The ledger numbers groups in creation order, so the index of a group is
    its position among all creation events sorted by (block_number,
    log_index). Provider page order has no influence.
    """
    return [
        CreatedGroup(
            group_index=index,
            public_key=ev["groupPubKey"],
            block_number=ev.block_number,
            log_index=ev.log_index,
        )
        for index, ev in enumerate(sort_events(list(events)))
    ]


def dedupe_members(members: Iterable[str]) -> list[str]:
    """Distinct member addresses, first-encounter order, case-insensitive."""
    seen: set[str] = set()
    distinct: list[str] = []
    for member in members:
        key = normalize_address(member)
        if key in seen:
            continue
        seen.add(key)
        distinct.append(member)
    return distinct


class GroupMetadataCache:
    """Lazily resolved group status, one slot per group index.

    Lives for a single aggregation call. Each slot is filled by the task
    that owns its group, so no two tasks ever race on the same entry.
    """

    def __init__(self, resolve: Callable[[CreatedGroup], Awaitable[GroupStatus]]) -> None:
        self._resolve = resolve
        self._slots: dict[int, GroupStatus] = {}

    async def get(self, group: CreatedGroup) -> GroupStatus:
        status = self._slots.get(group.group_index)
        if status is None:
            status = await self._resolve(group)
            self._slots[group.group_index] = status
        return status

    def __len__(self) -> int:
        return len(self._slots)
