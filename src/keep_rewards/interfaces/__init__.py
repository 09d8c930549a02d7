"""Protocol interfaces for keep_rewards components."""

from keep_rewards.interfaces.provider import BlockId, LedgerProvider
from keep_rewards.interfaces.indexer import DelegationIndex
from keep_rewards.interfaces.rewards import RewardAggregator

__all__ = [
    "BlockId", "LedgerProvider",
    "DelegationIndex",
    "RewardAggregator",
]
