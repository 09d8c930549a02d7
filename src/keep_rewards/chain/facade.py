"""Contract facades - one uniform call/transaction/event surface per contract."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

from eth_abi.exceptions import DecodingError

from keep_rewards.addresses import short
from keep_rewards.chain.codec import ContractCodec
from keep_rewards.errors import ProviderError
from keep_rewards.interfaces.provider import BlockId, LedgerProvider
from keep_rewards.models.config import ContractDescriptor
from keep_rewards.models.events import EventRecord, RawLog, sort_events
from keep_rewards.models.records import DelegationInfo, StakingConstants, TxReceipt

log = logging.getLogger(__name__)

# Substrings nodes use when an eth_getLogs range holds too many results
_TOO_MANY_RESULTS = ("query returned more than", "too many", "limit exceeded", "response size")


def _is_too_many_results(exc: Exception) -> bool:
    msg = str(exc).lower()
    return any(marker in msg for marker in _TOO_MANY_RESULTS)


class ContractFacade:
    """Wraps one contract's interface and address.

    Event history is fetched page by page from the contract's start block
    to the latest block. Each page is retried with exponential backoff; a
    page that returns too many results is split in half. Callers only ever
    see the fully merged list in (block_number, log_index) order, or an error.
    """

    def __init__(
        self,
        descriptor: ContractDescriptor,
        provider: LedgerProvider,
        page_size: int = 10_000,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        tx_options: dict[str, Any] | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._provider = provider
        self._codec = ContractCodec(descriptor.abi)
        self._page_size = max(page_size, 1)
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff
        self._tx_options = dict(tx_options or {})

    @property
    def descriptor(self) -> ContractDescriptor:
        return self._descriptor

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def address(self) -> str:
        return self._descriptor.address

    @property
    def start_block(self) -> int:
        return self._descriptor.start_block

    @property
    def codec(self) -> ContractCodec:
        return self._codec

    # ── Calls ──────────────────────────────────────────────

    async def call(self, method: str, *args: Any, block: BlockId = "latest") -> Any:
        """Read-only call. Returns the single output or a tuple of outputs."""
        data = self._codec.encode_call(method, args)
        raw = await self._provider.read(self.address, data, block)
        try:
            result = self._codec.decode_result(method, raw)
        except DecodingError as exc:
            # An address without contract code answers eth_call with empty data
            raise ProviderError(
                f"{self.name}.{method}: undecodable result ({len(raw)} bytes): {exc}"
            ) from exc
        log.debug("%s.%s%r -> %r", self.name, method, args, result)
        return result

    async def send_transaction(
        self, method: str, *args: Any, tx_options: dict[str, Any] | None = None
    ) -> TxReceipt:
        """State-changing call. Blocks until the receipt; never retried."""
        data = self._codec.encode_call(method, args)
        opts = {**self._tx_options, **(tx_options or {})}
        log.info("Sending %s.%s%r", self.name, method, args)
        receipt = await self._provider.send(self.address, data, opts)
        log.info(
            "%s.%s confirmed in block %d (tx=%s)",
            self.name, method, receipt.block_number, receipt.tx_hash[:18],
        )
        return receipt

    # ── Events ─────────────────────────────────────────────

    async def get_past_events(
        self,
        event_name: str,
        filters: Mapping[str, Any] | None = None,
        from_block: int | None = None,
        to_block: int | None = None,
    ) -> list[EventRecord]:
        """All matching events, optionally filtered on indexed fields."""
        topics = self._codec.event_topics(event_name, filters)
        start = self.start_block if from_block is None else from_block
        end = await self._provider.latest_block() if to_block is None else to_block

        raw_logs = await self._fetch_range(topics, start, end)
        try:
            records = [self._codec.decode_log(event_name, r) for r in raw_logs]
        except (DecodingError, ValueError) as exc:
            raise ProviderError(f"{self.name}.{event_name}: undecodable log: {exc}") from exc
        log.debug(
            "%s.%s: %d events in blocks %d-%d",
            self.name, event_name, len(records), start, end,
        )
        return sort_events(records)

    async def _fetch_range(
        self, topics: Sequence[bytes | None], start: int, end: int
    ) -> list[RawLog]:
        collected: list[RawLog] = []
        page = self._page_size
        current = start
        while current <= end:
            page_end = min(current + page - 1, end)
            try:
                batch = await self._fetch_page(topics, current, page_end)
            except ProviderError as exc:
                if page > 1 and _is_too_many_results(exc):
                    page = max(page // 2, 1)
                    log.warning(
                        "%s: getLogs %d-%d too large, reducing page to %d blocks",
                        self.name, current, page_end, page,
                    )
                    continue
                raise
            collected.extend(batch)
            current = page_end + 1
        return collected

    async def _fetch_page(
        self, topics: Sequence[bytes | None], from_block: int, to_block: int
    ) -> list[RawLog]:
        attempt = 0
        while True:
            try:
                return await self._provider.logs(self.address, topics, from_block, to_block)
            except ProviderError as exc:
                if _is_too_many_results(exc) or attempt >= self._max_retries:
                    raise
                delay = self._retry_backoff * (2 ** attempt)
                attempt += 1
                log.warning(
                    "%s: getLogs %d-%d failed (attempt %d/%d): %s; retrying in %.1fs",
                    self.name, from_block, to_block, attempt, self._max_retries, exc, delay,
                )
                await asyncio.sleep(delay)


class KeepTokenFacade(ContractFacade):
    """KeepToken (ERC-20)."""

    async def balance_of(self, owner: str) -> int:
        return await self.call("balanceOf", owner)


class TokenStakingFacade(ContractFacade):
    """TokenStaking: delegations, authorizations and staking parameters."""

    DELEGATION_EVENTS = ("Staked", "StakeDelegated", "OperatorStaked", "Undelegated")

    async def authorizer_of(self, operator: str) -> str:
        return await self.call("authorizerOf", operator)

    async def beneficiary_of(self, operator: str) -> str:
        return await self.call("beneficiaryOf", operator)

    async def owner_of(self, operator: str) -> str:
        return await self.call("ownerOf", operator)

    async def operators_of(self, owner: str) -> list[str]:
        return list(await self.call("operatorsOf", owner))

    async def get_delegation_info(self, operator: str) -> DelegationInfo:
        amount, created_at, undelegated_at = await self.call("getDelegationInfo", operator)
        return DelegationInfo(
            amount=amount, created_at=created_at, undelegated_at=undelegated_at,
        )

    async def is_authorized_for_operator(self, operator: str, operator_contract: str) -> bool:
        return await self.call("isAuthorizedForOperator", operator, operator_contract)

    async def authorize_operator_contract(
        self, operator: str, operator_contract: str
    ) -> TxReceipt:
        return await self.send_transaction("authorizeOperatorContract", operator, operator_contract)

    async def staking_constants(self) -> StakingConstants:
        return StakingConstants(
            minimum_stake=await self.call("minimumStake"),
            initialization_period=await self.call("initializationPeriod"),
            undelegation_period=await self.call("undelegationPeriod"),
        )

    async def staked_events(self) -> list[EventRecord]:
        return await self.get_past_events("Staked")

    async def delegation_events(self) -> list[EventRecord]:
        """Every delegation lifecycle event, merged in canonical order."""
        merged: list[EventRecord] = []
        for event_name in self.DELEGATION_EVENTS:
            if self.codec.has_event(event_name):
                merged.extend(await self.get_past_events(event_name))
        return sort_events(merged)


class BeaconOperatorFacade(ContractFacade):
    """KeepRandomBeaconOperator: groups, lifecycle and reward withdrawal."""

    async def get_group_members(self, group_public_key: str) -> list[str]:
        return list(await self.call("getGroupMembers", group_public_key))

    async def is_stale_group(self, group_public_key: str) -> bool:
        return await self.call("isStaleGroup", group_public_key)

    async def is_group_terminated(self, group_index: int) -> bool:
        return await self.call("isGroupTerminated", group_index)

    async def withdraw_group_member_rewards(self, member: str, group_index: int) -> TxReceipt:
        return await self.send_transaction("withdrawGroupMemberRewards", member, group_index)

    async def group_created_events(self) -> list[EventRecord]:
        return await self.get_past_events("DkgResultSubmittedEvent")

    async def rewards_withdrawn_events(self, beneficiary: str) -> list[EventRecord]:
        log.debug("Scanning withdrawals for %s", short(beneficiary))
        return await self.get_past_events(
            "GroupMemberRewardsWithdrawn", {"beneficiary": beneficiary},
        )


class BeaconStatisticsFacade(ContractFacade):
    """KeepRandomBeaconOperatorStatistics: per-group reward accounting."""

    async def awaiting_rewards(self, operator: str, group_index: int) -> int:
        return await self.call("awaitingRewards", operator, group_index)
