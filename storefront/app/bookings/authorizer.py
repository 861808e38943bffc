"""Booking authorization and single-visit pass consumption."""
from __future__ import annotations

from typing import Optional

from ..entitlements.models import PlanKind, Subscription
from ..passes.ledger import ConsumptionLedger
from .models import BookingDenialReason, BookingResult, Workshop


def can_book(subscription: Subscription, workshop: Workshop) -> bool:
    """Return whether ``subscription`` grants access to ``workshop``.

    Capacity is not considered here.
    """

    if not workshop.requires_membership:
        return True
    if subscription.is_active and subscription.plan == PlanKind.MONTHLY:
        return True
    if subscription.plan == PlanKind.SINGLE_VISIT and subscription.remaining_visits > 0:
        return True
    return False


def complete_booking(
    subscription: Subscription,
    workshop: Workshop,
    ledger: ConsumptionLedger,
    latest_transaction_id: Optional[str],
) -> BookingResult:
    """Record a booking, consuming the pass when the plan is single-visit.

    Open workshops and monthly plans never touch the ledger. Consumption
    cannot be undone. Callers must reconcile again to observe the spent pass.
    A failed ledger write propagates and no booking is reported.
    """

    if not workshop.requires_membership or subscription.plan != PlanKind.SINGLE_VISIT:
        return BookingResult(booked=True, workshop_id=workshop.id)

    if not latest_transaction_id:
        raise ValueError("single visit bookings require the pass transaction id")

    ledger.mark_consumed(latest_transaction_id)
    return BookingResult(
        booked=True,
        workshop_id=workshop.id,
        consumed_transaction_id=latest_transaction_id,
    )


def denial_reason(subscription: Subscription, workshop: Workshop) -> Optional[BookingDenialReason]:
    """Return why ``workshop`` cannot be booked, or ``None`` when it can."""

    if not can_book(subscription, workshop):
        return BookingDenialReason.MEMBERSHIP_REQUIRED
    if workshop.is_full:
        return BookingDenialReason.WORKSHOP_FULL
    return None
