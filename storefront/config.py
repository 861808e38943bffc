"""Storefront configuration helpers."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from storefront.app.entitlements.models import SingleVisitFallback
from storefront.app.entitlements.reconciler import (
    DEFAULT_MONTHLY_ENTITLEMENT_ID,
    DEFAULT_SINGLE_VISIT_ENTITLEMENT_ID,
    DEFAULT_SINGLE_VISIT_PRODUCT_ID,
)

LEDGER_BACKENDS = ("memory", "postgres")


@dataclass(frozen=True)
class StorefrontConfig:
    """Configuration for entitlement reconciliation and pass storage."""

    commerce_api_key: str = ""
    monthly_entitlement_id: str = DEFAULT_MONTHLY_ENTITLEMENT_ID
    single_visit_entitlement_id: str = DEFAULT_SINGLE_VISIT_ENTITLEMENT_ID
    single_visit_product_id: str = DEFAULT_SINGLE_VISIT_PRODUCT_ID
    single_visit_fallback: SingleVisitFallback = SingleVisitFallback.DENY
    ledger_backend: str = "memory"
    db_config: Dict[str, Any] = field(default_factory=dict)
    log_level: str = "INFO"

    @property
    def uses_sandbox(self) -> bool:
        return not self.commerce_api_key


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _parse_connect_timeout(raw_value: Optional[str]) -> int:
    if raw_value is None or raw_value == "":
        return 5
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def _to_choice(value: Optional[str], *, name: str, choices: tuple[str, ...], default: str) -> str:
    if value is None or not value.strip():
        return default
    lowered = value.strip().lower()
    if lowered not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return lowered


def load_storefront_config(env: Optional[Mapping[str, str]] = None) -> StorefrontConfig:
    """Load :class:`StorefrontConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    fallback = _to_choice(
        env_mapping.get("SINGLE_VISIT_FALLBACK"),
        name="SINGLE_VISIT_FALLBACK",
        choices=tuple(policy.value for policy in SingleVisitFallback),
        default=SingleVisitFallback.DENY.value,
    )
    ledger_backend = _to_choice(
        env_mapping.get("LEDGER_BACKEND"),
        name="LEDGER_BACKEND",
        choices=LEDGER_BACKENDS,
        default="memory",
    )

    db_config: Dict[str, Any] = {
        "host": env_mapping.get("DB_HOST", "127.0.0.1"),
        "port": _to_int(env_mapping.get("DB_PORT"), default=5432),
        "dbname": env_mapping.get("DB_NAME", "storefront_db"),
        "user": env_mapping.get("DB_USER", "storefront"),
        "password": env_mapping.get("DB_PASSWORD", "storefront"),
        "connect_timeout": _parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT")),
    }

    return StorefrontConfig(
        commerce_api_key=(env_mapping.get("COMMERCE_API_KEY") or "").strip(),
        monthly_entitlement_id=env_mapping.get("MONTHLY_ENTITLEMENT_ID")
        or DEFAULT_MONTHLY_ENTITLEMENT_ID,
        single_visit_entitlement_id=env_mapping.get("SINGLE_VISIT_ENTITLEMENT_ID")
        or DEFAULT_SINGLE_VISIT_ENTITLEMENT_ID,
        single_visit_product_id=env_mapping.get("SINGLE_VISIT_PRODUCT_ID")
        or DEFAULT_SINGLE_VISIT_PRODUCT_ID,
        single_visit_fallback=SingleVisitFallback(fallback),
        ledger_backend=ledger_backend,
        db_config=db_config,
        log_level=(env_mapping.get("LOG_LEVEL") or "INFO").strip().upper(),
    )
