from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from storefront.app.bookings import (
    BookingDenialReason,
    Workshop,
    can_book,
    complete_booking,
    denial_reason,
)
from storefront.app.entitlements import PlanKind, Subscription

STARTS_AT = datetime(2025, 1, 6, 10, tzinfo=timezone.utc)
EXPIRY = STARTS_AT + timedelta(days=30)


class RecordingLedger:
    def __init__(self) -> None:
        self.consumed: List[str] = []

    def has(self, transaction_id: str) -> bool:
        return transaction_id in self.consumed

    def mark_consumed(self, transaction_id: str) -> None:
        if transaction_id not in self.consumed:
            self.consumed.append(transaction_id)


def make_workshop(*, requires_membership: bool, spots_available: int = 5) -> Workshop:
    return Workshop(
        id="ws-robotics" if requires_membership else "ws-painting",
        title="Robotics Basics" if requires_membership else "Creative Painting",
        starts_at=STARTS_AT,
        max_participants=12,
        spots_available=spots_available,
        requires_membership=requires_membership,
    )


ALL_SUBSCRIPTIONS = [
    Subscription.inactive(),
    Subscription.monthly(EXPIRY),
    Subscription.monthly(None),
    Subscription.single_visit(EXPIRY, "tx-1"),
    Subscription(is_active=True, plan=PlanKind.SINGLE_VISIT, remaining_visits=0),
]


@pytest.mark.parametrize("subscription", ALL_SUBSCRIPTIONS)
def test_open_workshops_are_always_bookable(subscription):
    assert can_book(subscription, make_workshop(requires_membership=False)) is True


def test_membership_workshop_rules():
    workshop = make_workshop(requires_membership=True)

    assert can_book(Subscription.monthly(EXPIRY), workshop) is True
    assert can_book(Subscription.single_visit(EXPIRY, "tx-1"), workshop) is True
    assert can_book(Subscription.inactive(), workshop) is False
    assert (
        can_book(
            Subscription(is_active=True, plan=PlanKind.SINGLE_VISIT, remaining_visits=0),
            workshop,
        )
        is False
    )


def test_complete_booking_consumes_single_visit_pass():
    ledger = RecordingLedger()
    workshop = make_workshop(requires_membership=True)

    result = complete_booking(Subscription.single_visit(EXPIRY, "tx-1"), workshop, ledger, "tx-1")

    assert result.booked is True
    assert result.workshop_id == workshop.id
    assert result.consumed_transaction_id == "tx-1"
    assert ledger.consumed == ["tx-1"]


@pytest.mark.parametrize(
    "subscription",
    [Subscription.monthly(EXPIRY), Subscription.inactive()],
)
def test_complete_booking_leaves_ledger_untouched_without_pass(subscription):
    ledger = RecordingLedger()

    result = complete_booking(subscription, make_workshop(requires_membership=False), ledger, "tx-1")

    assert result.booked is True
    assert result.consumed_transaction_id is None
    assert ledger.consumed == []


def test_complete_booking_open_workshop_keeps_single_visit_pass():
    ledger = RecordingLedger()
    subscription = Subscription.single_visit(EXPIRY, "tx-1")

    result = complete_booking(subscription, make_workshop(requires_membership=False), ledger, "tx-1")

    assert result.booked is True
    assert result.consumed_transaction_id is None
    assert ledger.consumed == []
    assert ledger.has("tx-1") is False


def test_complete_booking_requires_transaction_for_pass():
    with pytest.raises(ValueError):
        complete_booking(
            Subscription.single_visit(EXPIRY, None),
            make_workshop(requires_membership=True),
            RecordingLedger(),
            None,
        )


def test_denial_reason():
    full = make_workshop(requires_membership=False, spots_available=0)
    gated = make_workshop(requires_membership=True)

    assert denial_reason(Subscription.inactive(), gated) == BookingDenialReason.MEMBERSHIP_REQUIRED
    assert denial_reason(Subscription.inactive(), full) == BookingDenialReason.WORKSHOP_FULL
    assert denial_reason(Subscription.monthly(EXPIRY), gated) is None


def test_workshop_capacity_validation():
    with pytest.raises(ValueError):
        Workshop(
            id="ws-1",
            title="Clay Sculpting",
            starts_at=STARTS_AT,
            max_participants=8,
            spots_available=9,
        )
