"""Commerce provider integration and the storefront service."""

from .exceptions import (
    CommerceError,
    CommerceTransportError,
    PurchaseCancelledError,
    PurchaseFailedError,
    UnknownPackageError,
)
from .models import (
    CommerceResult,
    Package,
    PurchaseOutcome,
    StorefrontAuditEvent,
    StorefrontAuditEventType,
)
from .provider import CommerceProvider, StorefrontEventLogger
from .service import StorefrontService

__all__ = [
    "CommerceError",
    "CommerceProvider",
    "CommerceResult",
    "CommerceTransportError",
    "Package",
    "PurchaseCancelledError",
    "PurchaseFailedError",
    "PurchaseOutcome",
    "StorefrontAuditEvent",
    "StorefrontAuditEventType",
    "StorefrontEventLogger",
    "StorefrontService",
    "UnknownPackageError",
]
