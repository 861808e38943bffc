"""Errors surfaced by commerce provider integrations."""
from __future__ import annotations


class CommerceError(Exception):
    """Base class for failures reported by the commerce provider."""


class CommerceTransportError(CommerceError):
    """The provider could not be reached or rejected the credentials."""


class PurchaseCancelledError(CommerceError):
    """The user cancelled the purchase flow."""

    def __init__(self, message: str = "Purchase was cancelled") -> None:
        super().__init__(message)


class PurchaseFailedError(CommerceError):
    """The store declined or failed to complete the payment."""


class UnknownPackageError(LookupError):
    """Requested package is not part of the current offering."""

    def __init__(self, package_id: str) -> None:
        self.package_id = package_id
        super().__init__(f"Unknown package: {package_id}")
