"""Application wiring for the storefront service."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

from ..bookings.catalog import WorkshopCatalog
from ..commerce import (
    CommerceProvider,
    Package,
    PurchaseCancelledError,
    PurchaseOutcome,
    StorefrontAuditEvent,
    StorefrontEventLogger,
    StorefrontService,
)
from ..entitlements.models import (
    EntitlementInfo,
    EntitlementSnapshot,
    PlanKind,
    PurchaseRecord,
)
from ..entitlements.reconciler import EntitlementReconciler
from ..passes.ledger import InMemoryKeyValueStore, KeyValueConsumptionLedger, KeyValueStore
from ...config import StorefrontConfig, load_storefront_config

logger = logging.getLogger("storefront")

SANDBOX_MONTHLY_PRODUCT_ID = "monthlyMembership"
SANDBOX_ACCESS_DAYS = 30


class LoggingStorefrontEventLogger(StorefrontEventLogger):
    """Simple event logger forwarding storefront audit events to logging."""

    def log(self, event: StorefrontAuditEvent) -> None:
        logger.info(
            "Storefront event %s customer=%s metadata=%s",
            event.event_type.value,
            event.customer_id,
            event.metadata,
        )


class SandboxCommerceProvider(CommerceProvider):
    """Minimal in-process provider for local development and tests.

    Purchases grant access for 30 days; single visit purchases are recorded
    most-recent-first like the real store reports them.
    """

    def __init__(
        self,
        *,
        customer_id: str = "sandbox-customer",
        monthly_entitlement_id: str = "monthly_membership",
        single_visit_entitlement_id: str = "single_visit",
        single_visit_product_id: str = "singleVisit",
    ) -> None:
        self.customer_id = customer_id
        self.monthly_entitlement_id = monthly_entitlement_id
        self.single_visit_entitlement_id = single_visit_entitlement_id
        self.single_visit_product_id = single_visit_product_id
        self._entitlements: Dict[str, EntitlementInfo] = {}
        self._purchases: List[PurchaseRecord] = []
        self.cancel_next_purchase = False

    async def fetch_customer_info(self) -> EntitlementSnapshot:
        return self._snapshot()

    async def purchase(self, package: Package) -> PurchaseOutcome:
        if self.cancel_next_purchase:
            self.cancel_next_purchase = False
            raise PurchaseCancelledError()

        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(days=SANDBOX_ACCESS_DAYS)
        transaction_id: Optional[str] = None
        if package.plan == PlanKind.MONTHLY:
            self._entitlements[self.monthly_entitlement_id] = EntitlementInfo(
                is_active=True, expires_at=expires_at
            )
        else:
            transaction_id = f"sandbox_tx_{uuid4().hex}"
            self._purchases.insert(
                0,
                PurchaseRecord(
                    product_id=package.product_id,
                    transaction_id=transaction_id,
                    purchased_at=now,
                ),
            )
            self._entitlements[self.single_visit_entitlement_id] = EntitlementInfo(
                is_active=True, expires_at=expires_at
            )
        return PurchaseOutcome(
            snapshot=self._snapshot(),
            product_id=package.product_id,
            transaction_id=transaction_id,
        )

    async def restore_purchases(self) -> EntitlementSnapshot:
        return self._snapshot()

    async def fetch_offerings(self) -> Sequence[Package]:
        return [
            Package(
                identifier="$rc_monthly",
                product_id=SANDBOX_MONTHLY_PRODUCT_ID,
                plan=PlanKind.MONTHLY,
                price_string="$49.99",
                title="Monthly Membership",
            ),
            Package(
                identifier=self.single_visit_product_id,
                product_id=self.single_visit_product_id,
                plan=PlanKind.SINGLE_VISIT,
                price_string="$14.99",
                title="Single Visit Pass",
            ),
        ]

    def _snapshot(self) -> EntitlementSnapshot:
        return EntitlementSnapshot(
            entitlements=dict(self._entitlements),
            non_subscription_purchases=tuple(self._purchases),
            customer_id=self.customer_id,
        )


def build_key_value_store(config: StorefrontConfig) -> KeyValueStore:
    if config.ledger_backend == "postgres":
        from ..passes.repository import PostgresKeyValueStore, connection_factory

        store = PostgresKeyValueStore(connection_factory(config.db_config))
        store.ensure_schema()
        return store
    return InMemoryKeyValueStore()


def build_storefront_service(
    config: Optional[StorefrontConfig] = None,
    *,
    provider: Optional[CommerceProvider] = None,
    catalog: Optional[WorkshopCatalog] = None,
    store: Optional[KeyValueStore] = None,
    event_logger: Optional[StorefrontEventLogger] = None,
) -> StorefrontService:
    """Construct the storefront service once at application start."""

    config = config or load_storefront_config()
    if provider is None:
        if not config.uses_sandbox:
            raise ValueError("COMMERCE_API_KEY is set but no commerce provider adapter was supplied")
        logger.info("Using sandbox commerce provider")
        provider = SandboxCommerceProvider(
            monthly_entitlement_id=config.monthly_entitlement_id,
            single_visit_entitlement_id=config.single_visit_entitlement_id,
            single_visit_product_id=config.single_visit_product_id,
        )

    reconciler = EntitlementReconciler(
        monthly_entitlement_id=config.monthly_entitlement_id,
        single_visit_entitlement_id=config.single_visit_entitlement_id,
        single_visit_product_id=config.single_visit_product_id,
        fallback=config.single_visit_fallback,
    )
    ledger = KeyValueConsumptionLedger(store if store is not None else build_key_value_store(config))
    return StorefrontService(
        provider,
        ledger,
        reconciler=reconciler,
        catalog=catalog,
        event_logger=event_logger or LoggingStorefrontEventLogger(),
    )


__all__ = [
    "LoggingStorefrontEventLogger",
    "SandboxCommerceProvider",
    "build_key_value_store",
    "build_storefront_service",
]
