"""Entitlements domain models and reconciliation."""

from .catalog import PLAN_CATALOG, PlanDefinition, get_plan_definition
from .models import (
    EntitlementInfo,
    EntitlementSnapshot,
    PlanKind,
    PurchaseRecord,
    SingleVisitFallback,
    Subscription,
)
from .reconciler import (
    DEFAULT_MONTHLY_ENTITLEMENT_ID,
    DEFAULT_SINGLE_VISIT_ENTITLEMENT_ID,
    DEFAULT_SINGLE_VISIT_PRODUCT_ID,
    ConsumedLookup,
    EntitlementReconciler,
    placeholder_transaction_id,
    reconcile,
)

__all__ = [
    "PLAN_CATALOG",
    "PlanDefinition",
    "get_plan_definition",
    "EntitlementInfo",
    "EntitlementSnapshot",
    "PlanKind",
    "PurchaseRecord",
    "SingleVisitFallback",
    "Subscription",
    "DEFAULT_MONTHLY_ENTITLEMENT_ID",
    "DEFAULT_SINGLE_VISIT_ENTITLEMENT_ID",
    "DEFAULT_SINGLE_VISIT_PRODUCT_ID",
    "ConsumedLookup",
    "EntitlementReconciler",
    "placeholder_transaction_id",
    "reconcile",
]
