"""Random beacon: group replay and reward aggregation."""

from keep_rewards.beacon.groups import GroupMetadataCache, dedupe_members, replay_created_groups
from keep_rewards.beacon.rewards import GroupRewardAggregator

__all__ = [
    "GroupMetadataCache", "GroupRewardAggregator",
    "dedupe_members", "replay_created_groups",
]
