"""Ledger service - the single consumer-facing surface over the registry."""

from __future__ import annotations

import logging

from keep_rewards.beacon.rewards import GroupRewardAggregator
from keep_rewards.chain.provider import Web3LedgerProvider
from keep_rewards.chain.registry import ContractRegistry
from keep_rewards.interfaces.indexer import DelegationIndex
from keep_rewards.interfaces.provider import LedgerProvider
from keep_rewards.interfaces.rewards import RewardAggregator
from keep_rewards.models.config import AppConfig, ContractDescriptor
from keep_rewards.models.records import (
    CreatedGroup,
    Delegation,
    DelegationInfo,
    Group,
    RewardEntry,
    RewardWithdrawal,
    StakingConstants,
    TxReceipt,
)
from keep_rewards.staking.indexer import DelegationIndexer

log = logging.getLogger(__name__)


class KeepLedgerService:
    """Wires the registry, delegation indexer and reward aggregator.

    Build it with `await KeepLedgerService.initialize(cfg)`; the returned
    service is ready for queries. Call close() when done.
    """

    def __init__(
        self,
        registry: ContractRegistry,
        max_concurrency: int = 8,
        timeout: float | None = None,
    ) -> None:
        self.registry = registry
        self.indexer: DelegationIndex = DelegationIndexer(registry, max_concurrency, timeout)
        self.rewards: RewardAggregator = GroupRewardAggregator(
            registry, self.indexer, max_concurrency, timeout,
        )

    @classmethod
    async def initialize(
        cls, cfg: AppConfig, provider: LedgerProvider | None = None
    ) -> "KeepLedgerService":
        if provider is None:
            provider = Web3LedgerProvider(
                cfg.rpc_url,
                from_address=cfg.from_address,
                request_timeout=cfg.request_timeout,
            )
        registry = ContractRegistry.from_config(cfg, provider)
        try:
            await registry.initialize()
        except Exception:
            await provider.close()
            raise
        log.info("Ledger service ready on %s", cfg.rpc_url)
        return cls(registry, cfg.query.max_concurrency, cfg.query.timeout)

    async def close(self) -> None:
        await self.registry.provider.close()

    # ── Registry ───────────────────────────────────────────

    def contracts(self) -> list[ContractDescriptor]:
        return self.registry.descriptors()

    def staking_constants(self) -> StakingConstants:
        return self.registry.staking_constants

    async def token_balance(self, owner: str) -> int:
        return await self.registry.keep_token.balance_of(owner)

    # ── Delegations ────────────────────────────────────────

    async def authorizer_of(self, operator: str) -> str:
        return await self.indexer.authorizer_of(operator)

    async def beneficiary_of(self, operator: str) -> str:
        return await self.indexer.beneficiary_of(operator)

    async def owner_of(self, operator: str) -> str:
        return await self.indexer.owner_of(operator)

    async def operators_of(self, owner: str) -> list[str]:
        return await self.indexer.operators_of(owner)

    async def get_delegation_info(self, operator: str) -> DelegationInfo:
        return await self.indexer.get_delegation_info(operator)

    async def get_delegations(
        self, operators: list[str], timeout: float | None = None
    ) -> list[Delegation]:
        return await self.indexer.get_delegations(operators, timeout)

    async def get_authorizer_operators(
        self, authorizer: str, timeout: float | None = None
    ) -> list[str]:
        return await self.indexer.get_authorizer_operators(authorizer, timeout)

    async def is_authorized_for_keep_random_beacon(self, operator: str) -> bool:
        return await self.indexer.is_authorized_for_keep_random_beacon(operator)

    async def reconstruct_delegations(self, timeout: float | None = None) -> list[Delegation]:
        return await self.indexer.reconstruct_delegations(timeout)

    async def authorize_keep_random_beacon_operator_contract(self, operator: str) -> TxReceipt:
        return await self.indexer.authorize_keep_random_beacon_operator_contract(operator)

    # ── Groups & rewards ───────────────────────────────────

    async def get_all_created_groups(self) -> list[CreatedGroup]:
        return await self.rewards.get_all_created_groups()

    async def get_groups(self, timeout: float | None = None) -> list[Group]:
        return await self.rewards.get_groups(timeout)

    async def find_keep_random_beacon_rewards_for_beneficiary(
        self, beneficiary: str, timeout: float | None = None
    ) -> list[RewardEntry]:
        return await self.rewards.find_keep_random_beacon_rewards_for_beneficiary(
            beneficiary, timeout,
        )

    async def get_withdrawn_rewards_for_beneficiary(
        self, beneficiary: str
    ) -> list[RewardWithdrawal]:
        return await self.rewards.get_withdrawn_rewards_for_beneficiary(beneficiary)

    async def withdraw_group_member_rewards(self, member: str, group_index: int) -> TxReceipt:
        return await self.rewards.withdraw_group_member_rewards(member, group_index)
