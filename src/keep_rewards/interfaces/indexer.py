"""DelegationIndex protocol - delegation relationships and authorization."""

from __future__ import annotations

from typing import Protocol

from keep_rewards.models.records import Delegation, DelegationInfo, TxReceipt


class DelegationIndex(Protocol):
    """Resolves delegations via live reads and full event-history scans."""

    # ── Live reads ──────────────────────────────────────────

    async def authorizer_of(self, operator: str) -> str:
        ...

    async def beneficiary_of(self, operator: str) -> str:
        ...

    async def owner_of(self, operator: str) -> str:
        ...

    async def operators_of(self, owner: str) -> list[str]:
        ...

    async def get_delegation_info(self, operator: str) -> DelegationInfo:
        ...

    async def get_delegations(
        self, operators: list[str], timeout: float | None = None
    ) -> list[Delegation]:
        """One merged record per operator, in input order."""
        ...

    async def is_authorized_for_keep_random_beacon(self, operator: str) -> bool:
        ...

    # ── History scans ───────────────────────────────────────

    async def get_authorizer_operators(
        self, authorizer: str, timeout: float | None = None
    ) -> list[str]:
        """Operators whose current authorizer is the given address."""
        ...

    async def reconstruct_delegations(self, timeout: float | None = None) -> list[Delegation]:
        """Fold the staking event history into delegation records."""
        ...

    # ── Commands ────────────────────────────────────────────

    async def authorize_keep_random_beacon_operator_contract(
        self, operator: str
    ) -> TxReceipt:
        ...
