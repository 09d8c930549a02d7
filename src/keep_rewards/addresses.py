"""Address normalization. Every address comparison goes through here."""

from __future__ import annotations

from eth_utils import is_address, to_checksum_address


def normalize_address(address: str) -> str:
    """Lower-case hex form used as a comparison and dictionary key."""
    return str(address).strip().lower()


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive equality. None never equals anything."""
    if a is None or b is None:
        return False
    return normalize_address(a) == normalize_address(b)


def checksum(address: str) -> str:
    """EIP-55 checksum form; raises ValueError on malformed input."""
    if not is_address(address.lower()):
        raise ValueError(f"Not an address: {address!r}")
    return to_checksum_address(address)


def short(address: str) -> str:
    """Abbreviated form for log lines."""
    return address[:10] if address else "?"
