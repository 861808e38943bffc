"""Domain models for workshops and booking outcomes."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Workshop(BaseModel):
    """Workshop record supplied by the catalog service."""

    id: str
    title: str
    starts_at: datetime
    max_participants: int = Field(ge=0)
    spots_available: int = Field(ge=0)
    requires_membership: bool = False
    description: str = ""
    age_range: Optional[str] = None
    duration_minutes: int = Field(default=60, gt=0)
    instructor: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_capacity(self) -> "Workshop":
        if self.spots_available > self.max_participants:
            raise ValueError("spots_available cannot exceed max_participants")
        return self

    @property
    def is_full(self) -> bool:
        return self.spots_available == 0


class BookingDenialReason(str, Enum):
    """Why a booking attempt did not go through."""

    MEMBERSHIP_REQUIRED = "membership_required"
    WORKSHOP_FULL = "workshop_full"


class BookingResult(BaseModel):
    """Outcome of a booking attempt."""

    booked: bool
    workshop_id: str
    reason: Optional[BookingDenialReason] = None
    consumed_transaction_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def denied(cls, workshop_id: str, reason: BookingDenialReason) -> "BookingResult":
        return cls(booked=False, workshop_id=workshop_id, reason=reason)
