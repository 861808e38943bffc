"""API routes exposing subscription state and workshop booking."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..commerce import StorefrontService, UnknownPackageError
from ..feature_gates import FeatureGateError
from ..passes import LedgerWriteError
from ..schemas.storefront import (
    BookingResponse,
    CommerceResultResponse,
    EligibilityResponse,
    OfferingsResponse,
    PackageResponse,
    PassCountResponse,
    PurchaseRequest,
    SubscriptionResponse,
)


def get_storefront_service(request: Request) -> StorefrontService:
    service = getattr(request.app.state, "storefront_service", None)
    if service is None:
        raise RuntimeError("Storefront service has not been configured yet")
    return service


router = APIRouter(prefix="/api/storefront", tags=["storefront"])


@router.get("/subscription", response_model=SubscriptionResponse)
def get_subscription(
    *,
    service: StorefrontService = Depends(get_storefront_service),
) -> SubscriptionResponse:
    return SubscriptionResponse.from_subscription(service.get_subscription_state())


@router.post("/subscription/refresh", response_model=CommerceResultResponse)
async def refresh_subscription(
    *,
    service: StorefrontService = Depends(get_storefront_service),
) -> CommerceResultResponse:
    result = await service.refresh()
    return CommerceResultResponse.from_result(result)


@router.get("/offerings", response_model=OfferingsResponse)
async def list_offerings(
    *,
    service: StorefrontService = Depends(get_storefront_service),
) -> OfferingsResponse:
    packages = await service.load_offerings()
    return OfferingsResponse(packages=[PackageResponse.from_package(package) for package in packages])


@router.post("/purchases", response_model=CommerceResultResponse)
async def purchase_package(
    payload: PurchaseRequest,
    *,
    service: StorefrontService = Depends(get_storefront_service),
) -> CommerceResultResponse:
    try:
        result = await service.purchase_package(payload.package_id)
    except UnknownPackageError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CommerceResultResponse.from_result(result)


@router.post("/purchases/restore", response_model=CommerceResultResponse)
async def restore_purchases(
    *,
    service: StorefrontService = Depends(get_storefront_service),
) -> CommerceResultResponse:
    result = await service.restore_purchases()
    return CommerceResultResponse.from_result(result)


@router.get("/workshops/{workshop_id}/eligibility", response_model=EligibilityResponse)
def workshop_eligibility(
    workshop_id: str,
    *,
    service: StorefrontService = Depends(get_storefront_service),
) -> EligibilityResponse:
    try:
        workshop = service.get_workshop(workshop_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return EligibilityResponse(
        workshop_id=workshop.id,
        can_book=service.can_book_workshop(workshop),
        requires_membership=workshop.requires_membership,
        spots_available=workshop.spots_available,
    )


@router.post("/workshops/{workshop_id}/book", response_model=BookingResponse)
def book_workshop(
    workshop_id: str,
    *,
    service: StorefrontService = Depends(get_storefront_service),
) -> BookingResponse:
    try:
        workshop = service.get_workshop(workshop_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    try:
        result = service.book_workshop(workshop)
    except LedgerWriteError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking could not be recorded, please try again.",
        ) from exc

    if not result.booked and result.reason is not None:
        raise FeatureGateError.from_denial(result.reason, workshop_id=workshop.id).to_http_exception()

    return BookingResponse.from_result(result, service.get_subscription_state())


@router.get("/passes/count", response_model=PassCountResponse)
def daily_passes_count(
    *,
    service: StorefrontService = Depends(get_storefront_service),
) -> PassCountResponse:
    return PassCountResponse(daily_passes_purchased=service.daily_passes_purchased_count())
