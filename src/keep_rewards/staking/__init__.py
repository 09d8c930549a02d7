"""Staking: delegation indexing and event replay."""

from keep_rewards.staking.indexer import DelegationIndexer
from keep_rewards.staking.replay import replay_delegations

__all__ = ["DelegationIndexer", "replay_delegations"]
