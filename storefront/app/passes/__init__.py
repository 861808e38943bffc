"""Single-use pass consumption tracking."""

from .exceptions import LedgerWriteError
from .ledger import (
    CONSUMED_KEY_PREFIX,
    ConsumptionLedger,
    InMemoryKeyValueStore,
    KeyValueConsumptionLedger,
    KeyValueStore,
    consumed_key,
)

__all__ = [
    "CONSUMED_KEY_PREFIX",
    "ConsumptionLedger",
    "InMemoryKeyValueStore",
    "KeyValueConsumptionLedger",
    "KeyValueStore",
    "LedgerWriteError",
    "consumed_key",
]
