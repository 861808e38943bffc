"""Domain models for entitlements and subscription reconciliation."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PlanKind(str, Enum):
    """Canonical identifiers for purchasable plans."""

    MONTHLY = "monthly"
    SINGLE_VISIT = "single_visit"


class SingleVisitFallback(str, Enum):
    """Policy for an active single-visit entitlement with no purchase record."""

    DENY = "deny"
    PLACEHOLDER = "placeholder"


class EntitlementInfo(BaseModel):
    """State of a named entitlement as reported by the commerce provider."""

    is_active: bool = False
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class PurchaseRecord(BaseModel):
    """A non-subscription (one-time) purchase."""

    product_id: str
    transaction_id: str
    purchased_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class EntitlementSnapshot(BaseModel):
    """Read-only customer info snapshot supplied by the commerce provider.

    ``non_subscription_purchases`` is ordered most-recent-first. ``fetched_at``
    is when the provider produced the data; naive values are taken as UTC.
    """

    entitlements: Dict[str, EntitlementInfo] = Field(default_factory=dict)
    non_subscription_purchases: Sequence[PurchaseRecord] = Field(default_factory=tuple)
    customer_id: Optional[str] = None
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @field_validator("fetched_at")
    @classmethod
    def _assume_utc(cls, fetched_at: datetime) -> datetime:
        if fetched_at.tzinfo is None:
            return fetched_at.replace(tzinfo=timezone.utc)
        return fetched_at

    def entitlement(self, entitlement_id: str) -> Optional[EntitlementInfo]:
        return self.entitlements.get(entitlement_id)

    def is_entitlement_active(self, entitlement_id: str) -> bool:
        info = self.entitlements.get(entitlement_id)
        return bool(info and info.is_active)

    def purchases_for(self, product_id: str) -> tuple[PurchaseRecord, ...]:
        """Return purchases of ``product_id``, most recent first."""

        return tuple(
            record for record in self.non_subscription_purchases if record.product_id == product_id
        )

    def latest_purchase(self, product_id: str) -> Optional[PurchaseRecord]:
        for record in self.non_subscription_purchases:
            if record.product_id == product_id:
                return record
        return None


class Subscription(BaseModel):
    """Canonical access state derived from a snapshot and the consumption ledger."""

    is_active: bool = False
    plan: Optional[PlanKind] = None
    expires_at: Optional[datetime] = None
    remaining_visits: int = Field(default=0, ge=0)
    pass_transaction_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_plan_invariants(self) -> "Subscription":
        if not self.is_active:
            if self.plan is not None or self.remaining_visits != 0:
                raise ValueError("inactive subscriptions carry no plan and no visits")
        elif self.plan is None:
            raise ValueError("active subscriptions require a plan")
        if self.plan == PlanKind.MONTHLY and self.remaining_visits != 0:
            raise ValueError("monthly plans are unlimited and never count visits")
        if self.plan == PlanKind.SINGLE_VISIT and self.remaining_visits not in (0, 1):
            raise ValueError("single visit plans hold at most one visit")
        if self.plan != PlanKind.SINGLE_VISIT and self.pass_transaction_id is not None:
            raise ValueError("only single visit plans reference a pass transaction")
        return self

    @classmethod
    def inactive(cls) -> "Subscription":
        return cls()

    @classmethod
    def monthly(cls, expires_at: Optional[datetime]) -> "Subscription":
        return cls(is_active=True, plan=PlanKind.MONTHLY, expires_at=expires_at)

    @classmethod
    def single_visit(
        cls,
        expires_at: Optional[datetime],
        transaction_id: Optional[str],
    ) -> "Subscription":
        return cls(
            is_active=True,
            plan=PlanKind.SINGLE_VISIT,
            expires_at=expires_at,
            remaining_visits=1,
            pass_transaction_id=transaction_id,
        )

    @property
    def status_text(self) -> str:
        """Human readable summary shown on the profile screen."""

        if self.is_active and self.plan == PlanKind.MONTHLY:
            return "Active Member"
        if self.is_active and self.plan == PlanKind.SINGLE_VISIT:
            suffix = "" if self.remaining_visits == 1 else "s"
            return f"{self.remaining_visits} visit{suffix} remaining"
        return "No Active Subscription"
