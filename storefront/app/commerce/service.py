"""Storefront service coordinating provider results, reconciliation and bookings."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, List, Optional, Sequence

from fastapi.concurrency import run_in_threadpool

from ..bookings.authorizer import can_book, complete_booking, denial_reason
from ..bookings.catalog import WorkshopCatalog
from ..bookings.models import BookingResult, Workshop
from ..entitlements.models import EntitlementSnapshot, Subscription
from ..entitlements.reconciler import EntitlementReconciler
from ..passes.exceptions import LedgerWriteError
from ..passes.ledger import ConsumptionLedger
from .exceptions import CommerceError, UnknownPackageError
from .models import (
    CommerceResult,
    Package,
    StorefrontAuditEvent,
    StorefrontAuditEventType,
)
from .provider import CommerceProvider, StorefrontEventLogger

logger = logging.getLogger("storefront")


class StorefrontService:
    """Owns the reconciled subscription state exposed to the presentation layer.

    Snapshots are ordered by ``fetched_at``: a result is applied unless the
    current snapshot was fetched later, so a refresh that raced a purchase can
    never hide the purchase. Reconciliation reads the ledger and runs in the
    threadpool under the same lock as bookings. ``error_message`` follows the
    most recently issued operation only. When the provider fails, the last
    known subscription is kept.
    """

    def __init__(
        self,
        provider: CommerceProvider,
        ledger: ConsumptionLedger,
        *,
        reconciler: Optional[EntitlementReconciler] = None,
        catalog: Optional[WorkshopCatalog] = None,
        event_logger: Optional[StorefrontEventLogger] = None,
    ) -> None:
        self._provider = provider
        self._ledger = ledger
        self._reconciler = reconciler or EntitlementReconciler()
        self._catalog = catalog
        self._event_logger = event_logger
        self._snapshot: Optional[EntitlementSnapshot] = None
        self._subscription = Subscription.inactive()
        self._issued_ticket = 0
        self._reported_ticket = 0
        self._in_flight = 0
        self._state_lock = Lock()
        self.available_packages: List[Package] = []
        self.error_message: Optional[str] = None

    @property
    def snapshot(self) -> Optional[EntitlementSnapshot]:
        return self._snapshot

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    def get_subscription_state(self) -> Subscription:
        return self._subscription

    def can_book_workshop(self, workshop: Workshop) -> bool:
        return can_book(self._subscription, workshop)

    def book_workshop(self, workshop: Workshop) -> BookingResult:
        """Book ``workshop``, consuming the single-visit pass for gated workshops.

        Open workshops never spend a pass. A failed ledger write propagates and
        the booking is not reported.
        """

        with self._state_lock:
            subscription = self._reconcile()
            reason = denial_reason(subscription, workshop)
            if reason is not None:
                logger.info("Booking denied workshop=%s reason=%s", workshop.id, reason.value)
                return BookingResult.denied(workshop.id, reason)

            try:
                result = complete_booking(
                    subscription,
                    workshop,
                    self._ledger,
                    subscription.pass_transaction_id,
                )
            except LedgerWriteError:
                logger.exception("Could not record pass consumption for workshop %s", workshop.id)
                raise

            if result.consumed_transaction_id:
                self._reconcile()
                self._log_event(
                    StorefrontAuditEventType.PASS_CONSUMED,
                    transaction_id=result.consumed_transaction_id,
                    workshop_id=workshop.id,
                )
            if not workshop.requires_membership:
                plan = "open"
            else:
                plan = subscription.plan.value if subscription.plan else "none"
            self._log_event(StorefrontAuditEventType.WORKSHOP_BOOKED, workshop_id=workshop.id, plan=plan)
            return result

    def daily_passes_purchased_count(self) -> int:
        if self._snapshot is None:
            return 0
        return self._reconciler.passes_purchased(self._snapshot)

    def get_workshop(self, workshop_id: str) -> Workshop:
        if self._catalog is None:
            raise LookupError("No workshop catalog configured")
        workshop = self._catalog.get_workshop(workshop_id)
        if workshop is None:
            raise LookupError(f"Workshop not found: {workshop_id}")
        return workshop

    def get_package(self, package_id: str) -> Package:
        for package in self.available_packages:
            if package.identifier == package_id:
                return package
        raise UnknownPackageError(package_id)

    async def refresh(self) -> CommerceResult:
        """Fetch the latest customer info and reconcile against it."""

        ticket = self._issue_ticket()
        with self._loading():
            try:
                snapshot = await self._provider.fetch_customer_info()
            except CommerceError as exc:
                return self._failure(
                    ticket,
                    f"Failed to check subscription: {exc}",
                    StorefrontAuditEventType.REFRESH_FAILED,
                )
            applied = await self._apply_snapshot(snapshot)

        self._log_event(StorefrontAuditEventType.SUBSCRIPTION_REFRESHED, applied=str(applied))
        return self._success(ticket, applied)

    async def purchase(self, package: Package) -> CommerceResult:
        ticket = self._issue_ticket()
        with self._loading():
            try:
                outcome = await self._provider.purchase(package)
            except CommerceError as exc:
                return self._failure(
                    ticket,
                    f"Purchase failed: {exc}",
                    StorefrontAuditEventType.PURCHASE_FAILED,
                    package_id=package.identifier,
                )
            applied = await self._apply_snapshot(outcome.snapshot)

        self._log_event(
            StorefrontAuditEventType.PURCHASE_COMPLETED,
            product_id=outcome.product_id,
            transaction_id=outcome.transaction_id or "",
        )
        return self._success(ticket, applied)

    async def purchase_package(self, package_id: str) -> CommerceResult:
        if not self.available_packages:
            await self.load_offerings()
        return await self.purchase(self.get_package(package_id))

    async def restore_purchases(self) -> CommerceResult:
        ticket = self._issue_ticket()
        with self._loading():
            try:
                snapshot = await self._provider.restore_purchases()
            except CommerceError as exc:
                return self._failure(
                    ticket,
                    f"Restore failed: {exc}",
                    StorefrontAuditEventType.RESTORE_FAILED,
                )
            applied = await self._apply_snapshot(snapshot)

        self._log_event(StorefrontAuditEventType.RESTORE_COMPLETED, applied=str(applied))
        return self._success(ticket, applied)

    async def load_offerings(self) -> Sequence[Package]:
        with self._loading():
            try:
                packages = await self._provider.fetch_offerings()
            except CommerceError as exc:
                self.error_message = f"Failed to load offerings: {exc}"
                logger.warning("Failed to load offerings: %s", exc)
                return list(self.available_packages)
        self.available_packages = list(packages)
        return list(self.available_packages)

    def _issue_ticket(self) -> int:
        self._issued_ticket += 1
        return self._issued_ticket

    def _claim_report(self, ticket: int) -> bool:
        # Tickets are issued and claimed on the event loop thread.
        if ticket <= self._reported_ticket:
            return False
        self._reported_ticket = ticket
        return True

    async def _apply_snapshot(self, snapshot: EntitlementSnapshot) -> bool:
        return await run_in_threadpool(self._store_snapshot, snapshot)

    def _store_snapshot(self, snapshot: EntitlementSnapshot) -> bool:
        with self._state_lock:
            current = self._snapshot
            if current is not None and snapshot.fetched_at < current.fetched_at:
                logger.debug(
                    "Discarding stale snapshot fetched_at=%s current=%s",
                    snapshot.fetched_at.isoformat(),
                    current.fetched_at.isoformat(),
                )
                return False
            self._snapshot = snapshot
            self._reconcile()
            return True

    def _reconcile(self) -> Subscription:
        if self._snapshot is None:
            self._subscription = Subscription.inactive()
        else:
            self._subscription = self._reconciler.reconcile(self._snapshot, self._ledger)
        return self._subscription

    @contextmanager
    def _loading(self) -> Iterator[None]:
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1

    def _success(self, ticket: int, applied: bool) -> CommerceResult:
        if self._claim_report(ticket):
            self.error_message = None
        return CommerceResult(success=True, subscription=self._subscription, applied=applied)

    def _failure(
        self,
        ticket: int,
        message: str,
        event_type: StorefrontAuditEventType,
        **metadata: str,
    ) -> CommerceResult:
        if self._claim_report(ticket):
            self.error_message = message
        logger.warning("%s", message)
        self._log_event(event_type, error=message, **metadata)
        return CommerceResult(
            success=False,
            subscription=self._subscription,
            message=message,
            applied=False,
        )

    def _log_event(self, event_type: StorefrontAuditEventType, **metadata: str) -> None:
        if self._event_logger is None:
            return
        customer_id = self._snapshot.customer_id if self._snapshot else None
        data: Dict[str, str] = {key: str(value) for key, value in metadata.items()}
        self._event_logger.log(
            StorefrontAuditEvent(event_type=event_type, customer_id=customer_id, metadata=data)
        )
