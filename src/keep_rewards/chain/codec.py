"""ABI codec - encodes calls and topic filters, decodes results and logs."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from eth_abi import decode, encode
from eth_utils import keccak, to_bytes, to_checksum_address

from keep_rewards.addresses import checksum
from keep_rewards.models.events import EventRecord, RawLog


def _is_dynamic(abi_type: str) -> bool:
    return abi_type in ("bytes", "string") or abi_type.endswith("]")


def _to_abi_value(abi_type: str, value: Any) -> Any:
    """Coerce a Python value into what eth_abi expects for abi_type."""
    if abi_type.endswith("[]"):
        return [_to_abi_value(abi_type[:-2], v) for v in value]
    if abi_type == "address":
        return checksum(value)
    if abi_type.startswith("bytes"):
        if isinstance(value, str):
            return to_bytes(hexstr=value)
        return bytes(value)
    if abi_type.startswith(("uint", "int")):
        return int(value)
    if abi_type == "bool":
        return bool(value)
    return value


def _from_abi_value(abi_type: str, value: Any) -> Any:
    """Turn a decoded eth_abi value into the package's plain representation."""
    if abi_type.endswith("[]"):
        return [_from_abi_value(abi_type[:-2], v) for v in value]
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type.startswith("bytes"):
        return "0x" + bytes(value).hex()
    return value


def _signature(name: str, params: Iterable[dict]) -> str:
    types = []
    for p in params:
        if p["type"].startswith("tuple"):
            raise ValueError(f"Tuple parameters are not supported ({name})")
        types.append(p["type"])
    return f"{name}({','.join(types)})"


class ContractCodec:
    """Encoding/decoding for one contract interface.

    Overloaded functions are not supported; the first ABI entry with a given
    name wins.
    """

    def __init__(self, abi: Iterable[dict[str, Any]]) -> None:
        self._functions: dict[str, dict] = {}
        self._events: dict[str, dict] = {}
        for entry in abi:
            kind = entry.get("type", "function")
            name = entry.get("name")
            if not name:
                continue
            if kind == "function":
                self._functions.setdefault(name, entry)
            elif kind == "event":
                self._events.setdefault(name, entry)

    def has_event(self, name: str) -> bool:
        return name in self._events

    def _function(self, name: str) -> dict:
        try:
            return self._functions[name]
        except KeyError:
            raise ValueError(f"Unknown function: {name}") from None

    def _event(self, name: str) -> dict:
        try:
            return self._events[name]
        except KeyError:
            raise ValueError(f"Unknown event: {name}") from None

    # ── Calls ──────────────────────────────────────────────

    def selector(self, name: str) -> bytes:
        fn = self._function(name)
        return keccak(text=_signature(name, fn["inputs"]))[:4]

    def encode_call(self, name: str, args: tuple | list) -> bytes:
        fn = self._function(name)
        types = [p["type"] for p in fn["inputs"]]
        if len(args) != len(types):
            raise TypeError(
                f"{name}() takes {len(types)} arguments, {len(args)} given"
            )
        values = [_to_abi_value(t, a) for t, a in zip(types, args)]
        return self.selector(name) + encode(types, values)

    def decode_result(self, name: str, data: bytes) -> Any:
        """Single-output functions return the value, others a tuple."""
        fn = self._function(name)
        types = [p["type"] for p in fn.get("outputs", [])]
        if not types:
            return None
        raw = decode(types, bytes(data))
        values = tuple(_from_abi_value(t, v) for t, v in zip(types, raw))
        return values[0] if len(values) == 1 else values

    # ── Events ─────────────────────────────────────────────

    def event_topic(self, name: str) -> bytes:
        ev = self._event(name)
        return keccak(text=_signature(name, ev["inputs"]))

    def encode_topic(self, abi_type: str, value: Any) -> bytes:
        """32-byte topic for an indexed parameter value."""
        if _is_dynamic(abi_type):
            if abi_type == "string":
                return keccak(text=str(value))
            return keccak(_to_abi_value(abi_type, value))
        return encode([abi_type], [_to_abi_value(abi_type, value)])

    def event_topics(
        self, name: str, filters: Mapping[str, Any] | None = None
    ) -> list[bytes | None]:
        """Topic list for eth_getLogs: signature topic, then indexed filters."""
        ev = self._event(name)
        filters = dict(filters or {})
        indexed = [p for p in ev["inputs"] if p.get("indexed")]
        unknown = set(filters) - {p["name"] for p in indexed}
        if unknown:
            raise ValueError(
                f"{name} has no indexed field(s): {', '.join(sorted(unknown))}"
            )

        topics: list[bytes | None] = [self.event_topic(name)]
        for p in indexed:
            if p["name"] in filters:
                topics.append(self.encode_topic(p["type"], filters[p["name"]]))
            else:
                topics.append(None)
        while topics and topics[-1] is None:
            topics.pop()
        return topics

    def decode_log(self, name: str, raw: RawLog) -> EventRecord:
        ev = self._event(name)
        if not raw.topics or raw.topics[0] != self.event_topic(name):
            raise ValueError(
                f"Log at {raw.block_number}:{raw.log_index} is not a {name} event"
            )

        indexed = [p for p in ev["inputs"] if p.get("indexed")]
        plain = [p for p in ev["inputs"] if not p.get("indexed")]
        if len(raw.topics) - 1 != len(indexed):
            raise ValueError(
                f"{name} expects {len(indexed)} indexed topics, got {len(raw.topics) - 1}"
            )

        decoded: dict[str, Any] = {}
        for p, topic in zip(indexed, raw.topics[1:]):
            if _is_dynamic(p["type"]):
                # Only the hash of a dynamic indexed value is recoverable
                decoded[p["name"]] = "0x" + bytes(topic).hex()
            else:
                decoded[p["name"]] = _from_abi_value(
                    p["type"], decode([p["type"]], bytes(topic))[0]
                )

        if plain:
            types = [p["type"] for p in plain]
            for p, v in zip(plain, decode(types, bytes(raw.data))):
                decoded[p["name"]] = _from_abi_value(p["type"], v)

        # Preserve ABI declaration order
        values = {p["name"]: decoded[p["name"]] for p in ev["inputs"]}
        return EventRecord(
            address=raw.address,
            event=name,
            block_number=raw.block_number,
            log_index=raw.log_index,
            values=values,
            transaction_hash=raw.transaction_hash,
        )
