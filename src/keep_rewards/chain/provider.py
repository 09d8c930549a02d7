"""Web3 ledger provider - JSON-RPC access through AsyncWeb3."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Sequence, TypeVar

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception

from keep_rewards.addresses import checksum
from keep_rewards.errors import ExecutionRevertedError, ProviderError
from keep_rewards.interfaces.provider import BlockId
from keep_rewards.models.events import RawLog
from keep_rewards.models.records import TxReceipt

log = logging.getLogger(__name__)

T = TypeVar("T")

_REVERT_PREFIX = "execution reverted"


def _hex(value: Any) -> str:
    """0x-prefixed hex for HexBytes/bytes, passthrough for strings."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def _revert_reason(exc: ContractLogicError) -> str | None:
    """Extract the revert reason from a ContractLogicError message."""
    msg = str(getattr(exc, "message", None) or exc).strip()
    if msg.startswith(_REVERT_PREFIX):
        msg = msg[len(_REVERT_PREFIX):].lstrip(":").strip()
    return msg or None


def _to_raw_log(entry: Any) -> RawLog:
    return RawLog(
        address=str(entry["address"]),
        topics=tuple(bytes(t) for t in entry["topics"]),
        data=bytes(entry["data"]),
        block_number=int(entry["blockNumber"]),
        log_index=int(entry["logIndex"]),
        transaction_hash=_hex(entry.get("transactionHash", "")),
    )


class Web3LedgerProvider:
    """LedgerProvider backed by web3's AsyncWeb3 over HTTP.

    Maps ContractLogicError to ExecutionRevertedError and every transport
    level failure to ProviderError. Nothing is retried here.
    """

    def __init__(
        self,
        rpc_url: str,
        from_address: str = "",
        request_timeout: int = 30,
        receipt_timeout: int = 120,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._from_address = from_address
        self._receipt_timeout = receipt_timeout
        self._w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=request_timeout)},
            )
        )

    @property
    def w3(self) -> AsyncWeb3:
        return self._w3

    async def _guard(self, what: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except ContractLogicError as exc:
            reason = _revert_reason(exc)
            raise ExecutionRevertedError(f"{what} reverted: {reason or 'no reason'}", reason=reason) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, Web3Exception, ValueError) as exc:
            raise ProviderError(f"{what} failed: {exc}") from exc

    async def read(self, address: str, data: bytes, block: BlockId = "latest") -> bytes:
        result = await self._guard(
            "eth_call",
            self._w3.eth.call({"to": checksum(address), "data": _hex(data)}, block),
        )
        return bytes(result)

    async def send(
        self, address: str, data: bytes, tx_options: dict[str, Any] | None = None
    ) -> TxReceipt:
        opts = dict(tx_options or {})
        tx: dict[str, Any] = {"to": checksum(address), "data": _hex(data)}
        sender = opts.pop("from", None) or self._from_address
        if sender:
            tx["from"] = checksum(sender)
        tx.update(opts)

        tx_hash = await self._guard("eth_sendTransaction", self._w3.eth.send_transaction(tx))
        log.info("Transaction submitted: %s", _hex(tx_hash))

        receipt = await self._guard(
            "wait_for_transaction_receipt",
            self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout),
        )
        result = TxReceipt(
            tx_hash=_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            status=int(receipt["status"]),
            gas_used=int(receipt.get("gasUsed", 0)),
        )
        if not result.success:
            raise ExecutionRevertedError(
                f"Transaction {result.tx_hash} reverted", tx_hash=result.tx_hash,
            )
        return result

    async def logs(
        self,
        address: str,
        topics: Sequence[bytes | None],
        from_block: int,
        to_block: int,
    ) -> list[RawLog]:
        params = {
            "address": checksum(address),
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": [_hex(t) if t is not None else None for t in topics],
        }
        entries = await self._guard("eth_getLogs", self._w3.eth.get_logs(params))
        return [_to_raw_log(e) for e in entries]

    async def latest_block(self) -> int:
        return int(await self._guard("eth_blockNumber", self._w3.eth.block_number))

    async def block_timestamp(self, block_number: int) -> int:
        block = await self._guard("eth_getBlockByNumber", self._w3.eth.get_block(block_number))
        return int(block["timestamp"])

    async def close(self) -> None:
        """Close the provider's HTTP session if it keeps one."""
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
