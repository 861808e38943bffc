"""Derives the canonical subscription state from provider snapshots."""
from __future__ import annotations

from typing import Optional, Protocol

from .models import (
    EntitlementInfo,
    EntitlementSnapshot,
    SingleVisitFallback,
    Subscription,
)

DEFAULT_MONTHLY_ENTITLEMENT_ID = "monthly_membership"
DEFAULT_SINGLE_VISIT_ENTITLEMENT_ID = "single_visit"
DEFAULT_SINGLE_VISIT_PRODUCT_ID = "singleVisit"

PLACEHOLDER_TRANSACTION_PREFIX = "placeholder:"


class ConsumedLookup(Protocol):
    """Read side of the consumption ledger."""

    def has(self, transaction_id: str) -> bool:
        ...


def placeholder_transaction_id(entitlement_id: str, info: EntitlementInfo) -> str:
    """Return the synthetic consumable token for a pass with no purchase record."""

    expiry = info.expires_at.isoformat() if info.expires_at else "open"
    return f"{PLACEHOLDER_TRANSACTION_PREFIX}{entitlement_id}:{expiry}"


class EntitlementReconciler:
    """Maps entitlement snapshots and ledger state onto a :class:`Subscription`.

    Monthly membership takes precedence over single-visit passes. A single
    visit pass is spent once the transaction of its most recent purchase is
    present in the ledger.
    """

    def __init__(
        self,
        *,
        monthly_entitlement_id: str = DEFAULT_MONTHLY_ENTITLEMENT_ID,
        single_visit_entitlement_id: str = DEFAULT_SINGLE_VISIT_ENTITLEMENT_ID,
        single_visit_product_id: str = DEFAULT_SINGLE_VISIT_PRODUCT_ID,
        fallback: SingleVisitFallback = SingleVisitFallback.DENY,
    ) -> None:
        self.monthly_entitlement_id = monthly_entitlement_id
        self.single_visit_entitlement_id = single_visit_entitlement_id
        self.single_visit_product_id = single_visit_product_id
        self.fallback = SingleVisitFallback(fallback)

    def reconcile(self, snapshot: EntitlementSnapshot, ledger: ConsumedLookup) -> Subscription:
        monthly = snapshot.entitlement(self.monthly_entitlement_id)
        if monthly is not None and monthly.is_active:
            return Subscription.monthly(monthly.expires_at)

        single_visit = snapshot.entitlement(self.single_visit_entitlement_id)
        if single_visit is not None and single_visit.is_active:
            transaction_id = self._pass_transaction_id(snapshot, single_visit)
            if transaction_id is None or ledger.has(transaction_id):
                return Subscription.inactive()
            return Subscription.single_visit(single_visit.expires_at, transaction_id)

        return Subscription.inactive()

    def passes_purchased(self, snapshot: EntitlementSnapshot) -> int:
        """Count all-time single-visit purchases, regardless of consumption."""

        return len(snapshot.purchases_for(self.single_visit_product_id))

    def _pass_transaction_id(
        self,
        snapshot: EntitlementSnapshot,
        entitlement: EntitlementInfo,
    ) -> Optional[str]:
        latest = snapshot.latest_purchase(self.single_visit_product_id)
        if latest is not None:
            return latest.transaction_id
        if self.fallback == SingleVisitFallback.PLACEHOLDER:
            return placeholder_transaction_id(self.single_visit_entitlement_id, entitlement)
        return None


def reconcile(snapshot: EntitlementSnapshot, ledger: ConsumedLookup) -> Subscription:
    """Reconcile using the default entitlement identifiers and fallback policy."""

    return EntitlementReconciler().reconcile(snapshot, ledger)
