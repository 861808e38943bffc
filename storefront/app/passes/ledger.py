"""Consumption ledger for single-use pass transactions."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Dict, Iterable, Optional, Protocol

from .exceptions import LedgerWriteError

logger = logging.getLogger("storefront.ledger")

CONSUMED_KEY_PREFIX = "consumed_"


def consumed_key(transaction_id: str) -> str:
    """Return the storage key flagging ``transaction_id`` as consumed."""

    return f"{CONSUMED_KEY_PREFIX}{transaction_id}"


class ConsumptionLedger(Protocol):
    """Records which one-time purchase transactions have been redeemed."""

    def has(self, transaction_id: str) -> bool:
        ...

    def mark_consumed(self, transaction_id: str) -> None:
        ...


class KeyValueStore(Protocol):
    """Boolean flag storage scoped to the application installation."""

    def get_flag(self, key: str) -> Optional[bool]:
        ...

    def set_flag(self, key: str, value: bool) -> None:
        ...


class InMemoryKeyValueStore:
    """Simple in-memory store suitable for tests and local development."""

    def __init__(self, initial: Optional[Dict[str, bool]] = None) -> None:
        self._flags: Dict[str, bool] = dict(initial or {})

    def get_flag(self, key: str) -> Optional[bool]:
        return self._flags.get(key)

    def set_flag(self, key: str, value: bool) -> None:
        self._flags[key] = bool(value)

    def keys(self) -> Iterable[str]:
        return tuple(self._flags)


class KeyValueConsumptionLedger:
    """Ledger persisting ``consumed_<transaction id>`` flags in a key-value store.

    Entries are only ever added. The lock serializes the read-then-write
    consumption check so two concurrent bookings cannot both redeem one pass.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._lock = Lock()

    def has(self, transaction_id: str) -> bool:
        return bool(self._store.get_flag(consumed_key(transaction_id)))

    def mark_consumed(self, transaction_id: str) -> None:
        self.consume(transaction_id)

    def consume(self, transaction_id: str) -> bool:
        """Flag ``transaction_id`` as consumed.

        Returns ``True`` when this call performed the transition and ``False``
        when the transaction had already been consumed.
        """

        if not transaction_id:
            raise ValueError("transaction_id must be provided")

        key = consumed_key(transaction_id)
        with self._lock:
            if self._store.get_flag(key):
                return False
            try:
                self._store.set_flag(key, True)
            except Exception as exc:
                logger.exception("Failed to persist consumption flag %s", key)
                raise LedgerWriteError(transaction_id) from exc
        logger.info("Marked pass transaction %s as consumed", transaction_id)
        return True
