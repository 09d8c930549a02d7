"""Error taxonomy shared by every layer that talks to the ledger."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger access failures."""

    code = "LEDGER_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class InitError(LedgerError):
    """The registry could not resolve a required contract."""

    code = "INIT_ERROR"


class ProviderError(LedgerError):
    """Transport failure while talking to the ledger provider."""

    code = "PROVIDER_ERROR"


class QueryTimeoutError(ProviderError):
    """A caller-supplied timeout expired before the query completed."""


class ExecutionRevertedError(LedgerError):
    """The ledger rejected a call or transaction."""

    code = "EXECUTION_REVERTED"

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        tx_hash: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.tx_hash = tx_hash


class NotReadyError(LedgerError):
    """A domain call arrived before the registry finished initializing."""

    code = "NOT_READY"
