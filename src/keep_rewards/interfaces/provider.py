"""LedgerProvider protocol - the only network-facing boundary."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from keep_rewards.models.events import RawLog
from keep_rewards.models.records import TxReceipt

BlockId = int | str  # block number or "latest"


class LedgerProvider(Protocol):
    """Request/response access to an Ethereum JSON-RPC node."""

    async def read(self, address: str, data: bytes, block: BlockId = "latest") -> bytes:
        """eth_call. Raises ExecutionRevertedError or ProviderError."""
        ...

    async def send(
        self, address: str, data: bytes, tx_options: dict[str, Any] | None = None
    ) -> TxReceipt:
        """Submit a transaction and wait for its receipt."""
        ...

    async def logs(
        self,
        address: str,
        topics: Sequence[bytes | None],
        from_block: int,
        to_block: int,
    ) -> list[RawLog]:
        """eth_getLogs for one block range. Order of the result is not trusted."""
        ...

    async def latest_block(self) -> int:
        ...

    async def block_timestamp(self, block_number: int) -> int:
        ...

    async def close(self) -> None:
        ...
