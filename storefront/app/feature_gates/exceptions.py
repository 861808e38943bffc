"""Custom exceptions used for booking gate enforcement."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status

from ..bookings.models import BookingDenialReason

_DENIAL_STATUS: Dict[BookingDenialReason, int] = {
    BookingDenialReason.MEMBERSHIP_REQUIRED: status.HTTP_402_PAYMENT_REQUIRED,
    BookingDenialReason.WORKSHOP_FULL: status.HTTP_409_CONFLICT,
}

_DENIAL_MESSAGES: Dict[BookingDenialReason, str] = {
    BookingDenialReason.MEMBERSHIP_REQUIRED: "Membership Required",
    BookingDenialReason.WORKSHOP_FULL: "Workshop Full",
}


@dataclass
class FeatureGateError(Exception):
    """A booking gate refused the request; carries an API-facing payload."""

    code: str
    message: str
    status_code: int = status.HTTP_403_FORBIDDEN
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            body.update(self.detail)
        object.__setattr__(self, "_payload", body)
        super().__init__(self.message)

    @classmethod
    def from_denial(cls, reason: BookingDenialReason, *, workshop_id: str) -> "FeatureGateError":
        """Build the error matching a :class:`BookingDenialReason`."""

        return cls(
            code=reason.value,
            message=_DENIAL_MESSAGES[reason],
            status_code=_DENIAL_STATUS[reason],
            detail={"workshop_id": workshop_id},
        )

    @property
    def payload(self) -> Mapping[str, Any]:
        return self._payload

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=dict(self.payload))
