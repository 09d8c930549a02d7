"""Data models for keep_rewards."""

from keep_rewards.models.events import EventRecord, RawLog, sort_events
from keep_rewards.models.records import (
    CreatedGroup,
    Delegation,
    DelegationInfo,
    Group,
    GroupStatus,
    RewardEntry,
    RewardWithdrawal,
    StakingConstants,
    TxReceipt,
)
from keep_rewards.models.config import (
    AppConfig,
    ContractDescriptor,
    ContractSource,
    EventsConfig,
    QueryConfig,
)

__all__ = [
    "EventRecord", "RawLog", "sort_events",
    "CreatedGroup", "Delegation", "DelegationInfo", "Group", "GroupStatus",
    "RewardEntry", "RewardWithdrawal", "StakingConstants", "TxReceipt",
    "AppConfig", "ContractDescriptor", "ContractSource", "EventsConfig",
    "QueryConfig",
]
