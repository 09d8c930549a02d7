"""Configuration models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ContractDescriptor:
    """Interface schema plus resolved address for one contract."""

    name: str
    abi: tuple[dict[str, Any], ...]
    address: str
    start_block: int = 0


@dataclass
class ContractSource:
    """Where to find one contract's address (and optionally its ABI)."""

    address: str = ""
    artifact: str = ""  # Truffle artifact JSON with "abi" and "networks"
    start_block: int | None = None


@dataclass
class EventsConfig:
    """Historical event scanning."""

    page_size: int = 10_000  # blocks per eth_getLogs request
    max_retries: int = 3
    retry_backoff: float = 1.0  # seconds, doubled per attempt


@dataclass
class QueryConfig:
    """Fan-out and timeout for aggregation calls."""

    max_concurrency: int = 8
    timeout: float | None = None  # seconds, None = unbounded


@dataclass
class AppConfig:
    """Complete application configuration."""

    log_level: str = "info"

    # Network
    rpc_url: str = "http://127.0.0.1:8545"
    chain_id: int | None = None
    start_block: int = 0
    from_address: str = ""  # sender for state-changing calls
    request_timeout: int = 30  # seconds
    deployments_path: str = ""

    events: EventsConfig = field(default_factory=EventsConfig)
    query: QueryConfig = field(default_factory=QueryConfig)

    # Keyed by contract name (e.g. "TokenStaking")
    contracts: dict[str, ContractSource] = field(default_factory=dict)
