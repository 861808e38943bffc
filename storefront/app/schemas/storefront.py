"""API schemas for storefront endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..bookings import BookingDenialReason, BookingResult
from ..commerce import CommerceResult, Package
from ..entitlements import PlanKind, Subscription, get_plan_definition


class SubscriptionResponse(BaseModel):
    is_active: bool = Field(alias="isActive")
    plan: Optional[PlanKind] = None
    expires_at: Optional[datetime] = Field(alias="expiresAt", default=None)
    remaining_visits: int = Field(alias="remainingVisits", ge=0)
    status_text: str = Field(alias="statusText")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_subscription(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls(
            is_active=subscription.is_active,
            plan=subscription.plan,
            expires_at=subscription.expires_at,
            remaining_visits=subscription.remaining_visits,
            status_text=subscription.status_text,
        )


class CommerceResultResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    subscription: SubscriptionResponse

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: CommerceResult) -> "CommerceResultResponse":
        return cls(
            success=result.success,
            message=result.message,
            subscription=SubscriptionResponse.from_subscription(result.subscription),
        )


class PackageResponse(BaseModel):
    package_id: str = Field(alias="packageId")
    product_id: str = Field(alias="productId")
    plan: PlanKind
    title: str
    description: str
    price: str
    benefits: List[str] = Field(default_factory=list)
    unlimited_visits: bool = Field(default=False, alias="unlimitedVisits")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_package(cls, package: Package) -> "PackageResponse":
        definition = get_plan_definition(package.plan)
        return cls(
            package_id=package.identifier,
            product_id=package.product_id,
            plan=package.plan,
            title=package.title or definition.display_name,
            description=definition.description,
            price=package.price_string,
            benefits=list(definition.benefits),
            unlimited_visits=definition.unlimited_visits,
        )


class OfferingsResponse(BaseModel):
    packages: List[PackageResponse]

    model_config = ConfigDict(populate_by_name=True)


class PurchaseRequest(BaseModel):
    package_id: str = Field(alias="packageId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class EligibilityResponse(BaseModel):
    workshop_id: str = Field(alias="workshopId")
    can_book: bool = Field(alias="canBook")
    requires_membership: bool = Field(alias="requiresMembership")
    spots_available: int = Field(alias="spotsAvailable", ge=0)

    model_config = ConfigDict(populate_by_name=True)


class BookingResponse(BaseModel):
    booked: bool
    workshop_id: str = Field(alias="workshopId")
    reason: Optional[BookingDenialReason] = None
    subscription: SubscriptionResponse

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: BookingResult, subscription: Subscription) -> "BookingResponse":
        return cls(
            booked=result.booked,
            workshop_id=result.workshop_id,
            reason=result.reason,
            subscription=SubscriptionResponse.from_subscription(subscription),
        )


class PassCountResponse(BaseModel):
    daily_passes_purchased: int = Field(alias="dailyPassesPurchased", ge=0)

    model_config = ConfigDict(populate_by_name=True)
