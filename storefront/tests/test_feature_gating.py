from __future__ import annotations

import pytest

from storefront.app.bookings import BookingDenialReason
from storefront.app.feature_gates import FeatureGateError


def test_feature_gate_error_from_membership_denial() -> None:
    error = FeatureGateError.from_denial(BookingDenialReason.MEMBERSHIP_REQUIRED, workshop_id="ws-1")
    http_exc = error.to_http_exception()

    assert http_exc.status_code == 402
    assert http_exc.detail["error"] == "membership_required"
    assert http_exc.detail["message"] == "Membership Required"
    assert http_exc.detail["workshop_id"] == "ws-1"


def test_feature_gate_error_from_capacity_denial() -> None:
    error = FeatureGateError.from_denial(BookingDenialReason.WORKSHOP_FULL, workshop_id="ws-yoga")

    assert error.code == "workshop_full"
    assert error.status_code == 409
    assert error.payload == {
        "error": "workshop_full",
        "message": "Workshop Full",
        "workshop_id": "ws-yoga",
    }


def test_feature_gate_error_defaults_to_forbidden() -> None:
    error = FeatureGateError(code="gate_closed", message="Closed")

    with pytest.raises(FeatureGateError) as exc:
        raise error

    assert exc.value.status_code == 403
    assert str(exc.value) == "Closed"
    assert exc.value.to_http_exception().detail == {"error": "gate_closed", "message": "Closed"}
