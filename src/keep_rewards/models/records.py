"""Domain records produced by the indexer and the reward aggregator."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DelegationInfo:
    """Result of TokenStaking.getDelegationInfo()."""

    amount: int
    created_at: int
    undelegated_at: int


@dataclass(frozen=True)
class Delegation:
    """Stake delegation binding owner, operator, beneficiary and authorizer."""

    operator: str
    amount: int
    created_at: int
    undelegated_at: int = 0
    owner: str | None = None
    beneficiary: str | None = None
    authorizer: str | None = None

    @property
    def is_undelegated(self) -> bool:
        return self.undelegated_at > 0

    def as_dict(self) -> dict:
        return {
            "operator": self.operator,
            "owner": self.owner,
            "beneficiary": self.beneficiary,
            "authorizer": self.authorizer,
            "amount": str(self.amount),
            "createdAt": str(self.created_at),
            "undelegatedAt": str(self.undelegated_at),
        }


@dataclass(frozen=True)
class CreatedGroup:
    """A group-creation event with its replay-derived index."""

    group_index: int
    public_key: str
    block_number: int
    log_index: int


@dataclass(frozen=True)
class GroupStatus:
    """Lifecycle flags. is_terminated is only ever True for non-stale groups."""

    is_stale: bool
    is_terminated: bool


@dataclass(frozen=True)
class Group:
    """A beacon signing group with derived lifecycle state."""

    group_index: int
    public_key: str
    is_stale: bool
    is_terminated: bool
    members: tuple[str, ...] = ()

    def as_dict(self) -> dict:
        return {
            "groupIndex": str(self.group_index),
            "groupPublicKey": self.public_key,
            "isStale": self.is_stale,
            "isTerminated": self.is_terminated,
            "members": list(self.members),
        }


@dataclass(frozen=True)
class RewardEntry:
    """Unclaimed group member reward for one operator in one group."""

    group_index: int
    group_public_key: str
    is_stale: bool
    is_terminated: bool
    operator_address: str
    beneficiary_address: str
    reward: int

    def as_dict(self) -> dict:
        return {
            "groupIndex": str(self.group_index),
            "groupPublicKey": self.group_public_key,
            "isStale": self.is_stale,
            "isTerminated": self.is_terminated,
            "operatorAddress": self.operator_address,
            "beneficiaryAddress": self.beneficiary_address,
            "reward": str(self.reward),
        }


@dataclass(frozen=True)
class RewardWithdrawal:
    """A GroupMemberRewardsWithdrawn event."""

    beneficiary: str
    operator: str
    amount: int
    group_index: int
    block_number: int
    transaction_hash: str = ""

    def as_dict(self) -> dict:
        return {
            "beneficiary": self.beneficiary,
            "operator": self.operator,
            "amount": str(self.amount),
            "groupIndex": str(self.group_index),
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
        }


@dataclass(frozen=True)
class TxReceipt:
    """Confirmed transaction receipt."""

    tx_hash: str
    block_number: int
    status: int
    gas_used: int = 0

    @property
    def success(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class StakingConstants:
    """TokenStaking parameters read once at registry startup."""

    minimum_stake: int
    initialization_period: int
    undelegation_period: int
