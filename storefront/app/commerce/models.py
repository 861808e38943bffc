"""Domain models exchanged with the commerce provider."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..entitlements.models import EntitlementSnapshot, PlanKind, Subscription


class Package(BaseModel):
    """A purchasable package from the provider's current offering."""

    identifier: str
    product_id: str
    plan: PlanKind
    price_string: str = ""
    title: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class PurchaseOutcome(BaseModel):
    """Result of a completed purchase."""

    snapshot: EntitlementSnapshot
    product_id: str
    transaction_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class CommerceResult(BaseModel):
    """Explicit result of a provider operation applied by the storefront."""

    success: bool
    subscription: Subscription
    message: Optional[str] = None
    applied: bool = True

    model_config = ConfigDict(frozen=True)


class StorefrontAuditEventType(str, Enum):
    """Audit event categories emitted by the storefront."""

    SUBSCRIPTION_REFRESHED = "subscription_refreshed"
    REFRESH_FAILED = "refresh_failed"
    PURCHASE_COMPLETED = "purchase_completed"
    PURCHASE_FAILED = "purchase_failed"
    RESTORE_COMPLETED = "restore_completed"
    RESTORE_FAILED = "restore_failed"
    PASS_CONSUMED = "pass_consumed"
    WORKSHOP_BOOKED = "workshop_booked"


class StorefrontAuditEvent(BaseModel):
    """Structured audit event for analytics and debugging."""

    event_type: StorefrontAuditEventType
    customer_id: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)
