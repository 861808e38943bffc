"""Errors raised by the pass consumption ledger."""
from __future__ import annotations


class LedgerWriteError(RuntimeError):
    """Raised when a consumption flag could not be persisted."""

    def __init__(self, transaction_id: str, message: str | None = None) -> None:
        self.transaction_id = transaction_id
        super().__init__(message or f"Failed to record consumption of transaction {transaction_id}")
