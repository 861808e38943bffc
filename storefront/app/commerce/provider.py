"""Protocols describing the storefront's external collaborators."""
from __future__ import annotations

from typing import Protocol, Sequence

from ..entitlements.models import EntitlementSnapshot
from .models import Package, PurchaseOutcome, StorefrontAuditEvent


class CommerceProvider(Protocol):
    """Third-party commerce SDK integration."""

    async def fetch_customer_info(self) -> EntitlementSnapshot:
        """Return the current entitlement snapshot for the customer."""

    async def purchase(self, package: Package) -> PurchaseOutcome:
        """Purchase ``package`` and return the refreshed snapshot."""

    async def restore_purchases(self) -> EntitlementSnapshot:
        """Restore previous purchases and return the refreshed snapshot."""

    async def fetch_offerings(self) -> Sequence[Package]:
        """Return the packages of the current offering."""


class StorefrontEventLogger(Protocol):
    """Captures structured storefront audit events."""

    def log(self, event: StorefrontAuditEvent) -> None:
        ...
