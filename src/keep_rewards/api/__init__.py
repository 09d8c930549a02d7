"""API components - the consumer-facing ledger service."""

from keep_rewards.api.service import KeepLedgerService

__all__ = ["KeepLedgerService"]
