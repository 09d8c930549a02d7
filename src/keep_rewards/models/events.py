"""Event models: raw provider logs and decoded contract events."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RawLog:
    """Undecoded log entry as returned by the ledger provider."""

    address: str
    topics: tuple[bytes, ...]
    data: bytes
    block_number: int
    log_index: int
    transaction_hash: str = ""

    @property
    def position(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)


@dataclass(frozen=True)
class EventRecord:
    """A decoded contract event.

    Records sort by (block_number, log_index); that order is the order the
    ledger emitted them in and every replay relies on it.
    """

    address: str
    event: str
    block_number: int
    log_index: int
    values: dict[str, Any] = field(default_factory=dict, compare=False)
    transaction_hash: str = ""

    @property
    def position(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)

    def __getitem__(self, name: str) -> Any:
        return self.values[name]


def sort_events(events: list[EventRecord]) -> list[EventRecord]:
    """Return events in canonical (block_number, log_index) order."""
    return sorted(events, key=lambda e: e.position)
