"""Workshop booking authorization."""

from .authorizer import can_book, complete_booking, denial_reason
from .catalog import InMemoryWorkshopCatalog, WorkshopCatalog
from .models import BookingDenialReason, BookingResult, Workshop

__all__ = [
    "BookingDenialReason",
    "BookingResult",
    "InMemoryWorkshopCatalog",
    "Workshop",
    "WorkshopCatalog",
    "can_book",
    "complete_booking",
    "denial_reason",
]
