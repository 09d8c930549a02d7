"""Contract registry - builds one facade per contract in a fixed table."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from keep_rewards.addresses import checksum
from keep_rewards.chain.abi import (
    BEACON_OPERATOR_ABI,
    BEACON_STATISTICS_ABI,
    KEEP_TOKEN_ABI,
    TOKEN_STAKING_ABI,
    load_artifact,
)
from keep_rewards.chain.facade import (
    BeaconOperatorFacade,
    BeaconStatisticsFacade,
    ContractFacade,
    KeepTokenFacade,
    TokenStakingFacade,
)
from keep_rewards.errors import InitError, LedgerError, NotReadyError
from keep_rewards.interfaces.provider import LedgerProvider
from keep_rewards.models.config import (
    AppConfig,
    ContractDescriptor,
    ContractSource,
    EventsConfig,
)
from keep_rewards.models.records import StakingConstants

log = logging.getLogger(__name__)

KEEP_TOKEN = "KeepToken"
TOKEN_STAKING = "TokenStaking"
BEACON_OPERATOR = "KeepRandomBeaconOperator"
BEACON_STATISTICS = "KeepRandomBeaconOperatorStatistics"


@dataclass(frozen=True)
class ContractSpec:
    """One row of the contract table: name, built-in ABI, facade type."""

    name: str
    abi: tuple[dict[str, Any], ...]
    facade_cls: type[ContractFacade]


# Initialization order is the declaration order
CONTRACT_TABLE: tuple[ContractSpec, ...] = (
    ContractSpec(KEEP_TOKEN, tuple(KEEP_TOKEN_ABI), KeepTokenFacade),
    ContractSpec(TOKEN_STAKING, tuple(TOKEN_STAKING_ABI), TokenStakingFacade),
    ContractSpec(BEACON_OPERATOR, tuple(BEACON_OPERATOR_ABI), BeaconOperatorFacade),
    ContractSpec(BEACON_STATISTICS, tuple(BEACON_STATISTICS_ABI), BeaconStatisticsFacade),
)


def _artifact_address(artifact: Mapping[str, Any], chain_id: int | None) -> str:
    """Address from a Truffle artifact's "networks" section."""
    networks = artifact.get("networks") or {}
    if chain_id is not None:
        entry = networks.get(str(chain_id)) or {}
        return str(entry.get("address", ""))
    if len(networks) == 1:
        return str(next(iter(networks.values())).get("address", ""))
    return ""


class ContractRegistry:
    """Explicit ledger context shared by the indexer and the aggregator.

    Not ready until initialize() has resolved every contract in the table
    and read the TokenStaking constants; until then every accessor raises
    NotReadyError.
    """

    def __init__(
        self,
        provider: LedgerProvider,
        sources: Mapping[str, ContractSource],
        chain_id: int | None = None,
        start_block: int = 0,
        events: EventsConfig | None = None,
        tx_options: dict[str, Any] | None = None,
        table: tuple[ContractSpec, ...] = CONTRACT_TABLE,
    ) -> None:
        self._provider = provider
        self._sources = dict(sources)
        self._chain_id = chain_id
        self._start_block = start_block
        self._events = events or EventsConfig()
        self._tx_options = dict(tx_options or {})
        self._table = table
        self._facades: dict[str, ContractFacade] = {}
        self._constants: StakingConstants | None = None
        self._ready = False

    @classmethod
    def from_config(cls, cfg: AppConfig, provider: LedgerProvider) -> "ContractRegistry":
        tx_options = {"from": cfg.from_address} if cfg.from_address else {}
        return cls(
            provider,
            cfg.contracts,
            chain_id=cfg.chain_id,
            start_block=cfg.start_block,
            events=cfg.events,
            tx_options=tx_options,
        )

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def provider(self) -> LedgerProvider:
        return self._provider

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> "ContractRegistry":
        """Resolve every contract in table order, then read staking constants."""
        if self._ready:
            return self

        facades: dict[str, ContractFacade] = {}
        for spec in self._table:
            descriptor = self._resolve(spec)
            facades[spec.name] = spec.facade_cls(
                descriptor,
                self._provider,
                page_size=self._events.page_size,
                max_retries=self._events.max_retries,
                retry_backoff=self._events.retry_backoff,
                tx_options=self._tx_options,
            )
            log.info(
                "Resolved %s at %s (start block %d)",
                spec.name, descriptor.address, descriptor.start_block,
            )

        staking = facades.get(TOKEN_STAKING)
        if not isinstance(staking, TokenStakingFacade):
            raise InitError(f"{TOKEN_STAKING} missing from contract table")
        try:
            constants = await staking.staking_constants()
        except LedgerError as exc:
            raise InitError(f"Could not read {TOKEN_STAKING} constants: {exc.message}") from exc

        self._facades = facades
        self._constants = constants
        self._ready = True
        log.info(
            "Registry ready: %d contracts, minimum stake %d",
            len(facades), constants.minimum_stake,
        )
        return self

    def _resolve(self, spec: ContractSpec) -> ContractDescriptor:
        source = self._sources.get(spec.name) or ContractSource()
        abi: tuple[dict[str, Any], ...] = spec.abi
        address = source.address

        if source.artifact:
            try:
                artifact = load_artifact(source.artifact)
            except (OSError, ValueError) as exc:
                raise InitError(f"Cannot load artifact for {spec.name}: {exc}") from exc
            abi = tuple(artifact["abi"])
            if not address:
                address = _artifact_address(artifact, self._chain_id)

        if not address:
            raise InitError(f"No address resolved for {spec.name}")
        try:
            address = checksum(address)
        except ValueError as exc:
            raise InitError(f"Invalid address for {spec.name}: {address!r}") from exc

        start_block = source.start_block if source.start_block is not None else self._start_block
        return ContractDescriptor(
            name=spec.name, abi=abi, address=address, start_block=start_block,
        )

    # ── Accessors ──────────────────────────────────────────

    def _require_ready(self) -> None:
        if not self._ready:
            raise NotReadyError("Contract registry is not initialized")

    def facade(self, name: str) -> ContractFacade:
        self._require_ready()
        try:
            return self._facades[name]
        except KeyError:
            raise KeyError(f"No contract named {name!r} in registry") from None

    def descriptors(self) -> list[ContractDescriptor]:
        self._require_ready()
        return [f.descriptor for f in self._facades.values()]

    @property
    def staking_constants(self) -> StakingConstants:
        self._require_ready()
        assert self._constants is not None
        return self._constants

    @property
    def keep_token(self) -> KeepTokenFacade:
        return self.facade(KEEP_TOKEN)  # type: ignore[return-value]

    @property
    def token_staking(self) -> TokenStakingFacade:
        return self.facade(TOKEN_STAKING)  # type: ignore[return-value]

    @property
    def beacon_operator(self) -> BeaconOperatorFacade:
        return self.facade(BEACON_OPERATOR)  # type: ignore[return-value]

    @property
    def beacon_statistics(self) -> BeaconStatisticsFacade:
        return self.facade(BEACON_STATISTICS)  # type: ignore[return-value]
