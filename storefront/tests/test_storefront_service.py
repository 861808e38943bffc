"""Unit tests for the storefront service."""
from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple, Union

import pytest

from storefront.app.bookings import BookingDenialReason, InMemoryWorkshopCatalog, Workshop
from storefront.app.commerce import (
    CommerceTransportError,
    Package,
    PurchaseCancelledError,
    PurchaseOutcome,
    StorefrontAuditEvent,
    StorefrontAuditEventType,
    StorefrontService,
    UnknownPackageError,
)
from storefront.app.entitlements import (
    EntitlementInfo,
    EntitlementReconciler,
    EntitlementSnapshot,
    PlanKind,
    PurchaseRecord,
)
from storefront.app.passes import (
    InMemoryKeyValueStore,
    KeyValueConsumptionLedger,
    LedgerWriteError,
)
from storefront.app.services.storefront import SandboxCommerceProvider

NOW = datetime.now(timezone.utc)

MONTHLY_PACKAGE = Package(identifier="$rc_monthly", product_id="monthlyMembership", plan=PlanKind.MONTHLY)
PASS_PACKAGE = Package(identifier="singleVisit", product_id="singleVisit", plan=PlanKind.SINGLE_VISIT)


def single_visit_snapshot(*transaction_ids: str) -> EntitlementSnapshot:
    return EntitlementSnapshot(
        entitlements={
            "single_visit": EntitlementInfo(is_active=True, expires_at=NOW + timedelta(days=30)),
        },
        non_subscription_purchases=tuple(
            PurchaseRecord(product_id="singleVisit", transaction_id=tx) for tx in transaction_ids
        ),
        customer_id="parent-1",
    )


def monthly_snapshot() -> EntitlementSnapshot:
    return EntitlementSnapshot(
        entitlements={
            "monthly_membership": EntitlementInfo(is_active=True, expires_at=NOW + timedelta(days=30)),
        },
        customer_id="parent-1",
    )


class FakeCommerceProvider:
    def __init__(self, snapshot: Optional[EntitlementSnapshot] = None) -> None:
        self.snapshot = snapshot or EntitlementSnapshot()
        self.fetch_error: Optional[Exception] = None
        self.purchase_error: Optional[Exception] = None
        self.purchase_snapshot: Optional[EntitlementSnapshot] = None
        self.offerings_error: Optional[Exception] = None
        self.gates: List[Tuple[asyncio.Event, Union[EntitlementSnapshot, Exception]]] = []
        self.purchase_gate: Optional[asyncio.Event] = None
        self.purchased: List[Package] = []

    async def fetch_customer_info(self) -> EntitlementSnapshot:
        if self.gates:
            gate, result = self.gates.pop(0)
            await gate.wait()
            if isinstance(result, Exception):
                raise result
            return result
        if self.fetch_error:
            raise self.fetch_error
        return self.snapshot

    async def purchase(self, package: Package) -> PurchaseOutcome:
        if self.purchase_gate:
            await self.purchase_gate.wait()
        if self.purchase_error:
            raise self.purchase_error
        self.purchased.append(package)
        return PurchaseOutcome(
            snapshot=self.purchase_snapshot or self.snapshot,
            product_id=package.product_id,
            transaction_id="tx-new",
        )

    async def restore_purchases(self) -> EntitlementSnapshot:
        if self.fetch_error:
            raise self.fetch_error
        return self.snapshot

    async def fetch_offerings(self) -> Sequence[Package]:
        if self.offerings_error:
            raise self.offerings_error
        return [MONTHLY_PACKAGE, PASS_PACKAGE]


class RecordingEventLogger:
    def __init__(self) -> None:
        self.events: List[StorefrontAuditEvent] = []

    def log(self, event: StorefrontAuditEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> List[StorefrontAuditEventType]:
        return [event.event_type for event in self.events]


class FailingStore(InMemoryKeyValueStore):
    def set_flag(self, key: str, value: bool) -> None:
        raise OSError("disk full")


def make_workshop(workshop_id: str, *, requires_membership: bool = True, spots_available: int = 4) -> Workshop:
    return Workshop(
        id=workshop_id,
        title="Science Experiments",
        starts_at=NOW + timedelta(days=2),
        max_participants=10,
        spots_available=spots_available,
        requires_membership=requires_membership,
    )


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def ledger(store) -> KeyValueConsumptionLedger:
    return KeyValueConsumptionLedger(store)


@pytest.fixture
def provider() -> FakeCommerceProvider:
    return FakeCommerceProvider()


@pytest.fixture
def event_logger() -> RecordingEventLogger:
    return RecordingEventLogger()


@pytest.fixture
def service(provider, ledger, event_logger) -> StorefrontService:
    catalog = InMemoryWorkshopCatalog([make_workshop("ws-1"), make_workshop("ws-2")])
    return StorefrontService(provider, ledger, catalog=catalog, event_logger=event_logger)


def test_initial_state_is_inactive(service):
    subscription = service.get_subscription_state()

    assert subscription.is_active is False
    assert service.daily_passes_purchased_count() == 0
    assert service.is_loading is False


def test_single_visit_pass_is_redeemed_once(service, provider, ledger):
    provider.snapshot = single_visit_snapshot("tx-1")
    workshop = make_workshop("ws-1")
    asyncio.run(service.refresh())

    assert service.can_book_workshop(workshop) is True

    result = service.book_workshop(workshop)

    assert result.booked is True
    assert result.consumed_transaction_id == "tx-1"
    assert ledger.has("tx-1") is True
    assert EntitlementReconciler().reconcile(provider.snapshot, ledger).is_active is False
    assert service.get_subscription_state().is_active is False
    assert service.can_book_workshop(workshop) is False

    second = service.book_workshop(make_workshop("ws-2"))
    assert second.booked is False
    assert second.reason == BookingDenialReason.MEMBERSHIP_REQUIRED


def test_refresh_after_consumption_stays_inactive(service, provider):
    provider.snapshot = single_visit_snapshot("tx-1")
    asyncio.run(service.refresh())
    service.book_workshop(make_workshop("ws-1"))

    asyncio.run(service.refresh())

    assert service.get_subscription_state().is_active is False


def test_monthly_membership_never_consumes(service, provider, store):
    provider.snapshot = monthly_snapshot()
    asyncio.run(service.refresh())

    first = service.book_workshop(make_workshop("ws-1"))
    second = service.book_workshop(make_workshop("ws-2"))

    assert first.booked is True
    assert second.booked is True
    assert list(store.keys()) == []
    assert service.get_subscription_state().plan == PlanKind.MONTHLY


def test_pass_count_is_independent_of_ledger(service, provider):
    provider.snapshot = single_visit_snapshot("tx-3", "tx-2", "tx-1")
    asyncio.run(service.refresh())

    service.book_workshop(make_workshop("ws-1"))

    assert service.daily_passes_purchased_count() == 3


def test_full_workshop_is_not_booked(service, provider, store):
    provider.snapshot = single_visit_snapshot("tx-1")
    asyncio.run(service.refresh())

    result = service.book_workshop(make_workshop("ws-full", spots_available=0))

    assert result.booked is False
    assert result.reason == BookingDenialReason.WORKSHOP_FULL
    assert list(store.keys()) == []
    assert service.get_subscription_state().remaining_visits == 1


def test_open_workshop_keeps_pass(service, provider, ledger):
    provider.snapshot = single_visit_snapshot("tx-1")
    asyncio.run(service.refresh())

    result = service.book_workshop(make_workshop("ws-open", requires_membership=False))

    assert result.booked is True
    assert result.consumed_transaction_id is None
    assert ledger.has("tx-1") is False
    assert service.get_subscription_state().remaining_visits == 1


def test_transport_error_keeps_last_known_subscription(service, provider, event_logger):
    provider.snapshot = monthly_snapshot()
    asyncio.run(service.refresh())
    provider.fetch_error = CommerceTransportError("network unreachable")

    result = asyncio.run(service.refresh())

    assert result.success is False
    assert result.message == "Failed to check subscription: network unreachable"
    assert service.error_message == result.message
    assert service.get_subscription_state().plan == PlanKind.MONTHLY
    assert StorefrontAuditEventType.REFRESH_FAILED in event_logger.types


def test_purchase_failure_leaves_state_untouched(service, provider, store, event_logger):
    provider.snapshot = single_visit_snapshot("tx-1")
    asyncio.run(service.refresh())
    before = service.get_subscription_state()
    provider.purchase_error = PurchaseCancelledError()

    result = asyncio.run(service.purchase(MONTHLY_PACKAGE))

    assert result.success is False
    assert result.message == "Purchase failed: Purchase was cancelled"
    assert service.get_subscription_state() == before
    assert list(store.keys()) == []
    assert event_logger.events[-1].event_type == StorefrontAuditEventType.PURCHASE_FAILED


def test_purchase_applies_returned_snapshot(service, provider, event_logger):
    provider.purchase_snapshot = monthly_snapshot()

    result = asyncio.run(service.purchase(MONTHLY_PACKAGE))

    assert result.success is True
    assert result.subscription.plan == PlanKind.MONTHLY
    assert service.get_subscription_state().is_active is True
    completed = event_logger.events[-1]
    assert completed.event_type == StorefrontAuditEventType.PURCHASE_COMPLETED
    assert completed.metadata["product_id"] == "monthlyMembership"
    assert completed.customer_id == "parent-1"


def test_purchase_package_loads_offerings(service, provider):
    provider.purchase_snapshot = single_visit_snapshot("tx-new")

    result = asyncio.run(service.purchase_package("singleVisit"))

    assert result.subscription.plan == PlanKind.SINGLE_VISIT
    assert provider.purchased == [PASS_PACKAGE]
    assert [package.identifier for package in service.available_packages] == ["$rc_monthly", "singleVisit"]


def test_purchase_unknown_package(service):
    with pytest.raises(UnknownPackageError):
        asyncio.run(service.purchase_package("lifetime"))


def test_restore_purchases_reconciles(service, provider, event_logger):
    provider.snapshot = single_visit_snapshot("tx-1")

    result = asyncio.run(service.restore_purchases())

    assert result.success is True
    assert service.get_subscription_state().plan == PlanKind.SINGLE_VISIT
    assert StorefrontAuditEventType.RESTORE_COMPLETED in event_logger.types


def test_restore_failure_reports_message(service, provider):
    provider.fetch_error = CommerceTransportError("invalid API key")

    result = asyncio.run(service.restore_purchases())

    assert result.success is False
    assert result.message == "Restore failed: invalid API key"


def test_offerings_failure_keeps_previous_packages(service, provider):
    asyncio.run(service.load_offerings())
    provider.offerings_error = CommerceTransportError("timeout")

    packages = asyncio.run(service.load_offerings())

    assert len(packages) == 2
    assert service.error_message == "Failed to load offerings: timeout"


def test_older_snapshot_never_overwrites_newer(service, provider):
    stale_gate = asyncio.Event()
    fresh_gate = asyncio.Event()
    provider.gates = [
        (stale_gate, EntitlementSnapshot(fetched_at=NOW)),
        (fresh_gate, monthly_snapshot().model_copy(update={"fetched_at": NOW + timedelta(seconds=1)})),
    ]

    async def scenario():
        stale = asyncio.create_task(service.refresh())
        await asyncio.sleep(0)
        fresh = asyncio.create_task(service.refresh())
        await asyncio.sleep(0)
        assert service.is_loading is True
        fresh_gate.set()
        fresh_result = await fresh
        stale_gate.set()
        stale_result = await stale
        return stale_result, fresh_result

    stale_result, fresh_result = asyncio.run(scenario())

    assert fresh_result.applied is True
    assert stale_result.applied is False
    assert service.get_subscription_state().plan == PlanKind.MONTHLY
    assert service.is_loading is False


def test_purchase_resolving_after_refresh_is_applied(service, provider):
    provider.snapshot = EntitlementSnapshot(customer_id="parent-1", fetched_at=NOW)
    provider.purchase_snapshot = single_visit_snapshot("tx-new").model_copy(
        update={"fetched_at": NOW + timedelta(seconds=5)}
    )

    async def scenario():
        provider.purchase_gate = asyncio.Event()
        pending = asyncio.create_task(service.purchase(PASS_PACKAGE))
        await asyncio.sleep(0)
        refreshed = await service.refresh()
        provider.purchase_gate.set()
        purchased = await pending
        return refreshed, purchased

    refreshed, purchased = asyncio.run(scenario())

    assert refreshed.applied is True
    assert purchased.success is True
    assert purchased.applied is True
    state = service.get_subscription_state()
    assert state.plan == PlanKind.SINGLE_VISIT
    assert state.pass_transaction_id == "tx-new"
    assert purchased.subscription == state


def test_stale_success_keeps_newer_error(service, provider):
    gate = asyncio.Event()
    provider.gates = [(gate, monthly_snapshot())]
    provider.fetch_error = CommerceTransportError("offline")

    async def scenario():
        first = asyncio.create_task(service.refresh())
        await asyncio.sleep(0)
        second = await service.refresh()
        gate.set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert second.success is False
    assert first.success is True
    assert service.error_message == "Failed to check subscription: offline"


def test_stale_failure_keeps_newer_success(service, provider):
    gate = asyncio.Event()
    provider.gates = [(gate, CommerceTransportError("timeout"))]
    provider.snapshot = monthly_snapshot()

    async def scenario():
        first = asyncio.create_task(service.refresh())
        await asyncio.sleep(0)
        second = await service.refresh()
        gate.set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert second.success is True
    assert first.success is False
    assert first.message == "Failed to check subscription: timeout"
    assert service.error_message is None
    assert service.get_subscription_state().plan == PlanKind.MONTHLY


def test_refresh_reads_ledger_off_the_event_loop(provider):
    class ThreadRecordingLedger(KeyValueConsumptionLedger):
        def __init__(self) -> None:
            super().__init__(InMemoryKeyValueStore())
            self.threads: List[int] = []

        def has(self, transaction_id: str) -> bool:
            self.threads.append(threading.get_ident())
            return super().has(transaction_id)

    ledger = ThreadRecordingLedger()
    service = StorefrontService(provider, ledger)
    provider.snapshot = single_visit_snapshot("tx-1")

    async def scenario():
        await service.refresh()
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())

    assert ledger.threads
    assert loop_thread not in ledger.threads
    assert service.get_subscription_state().remaining_visits == 1


def test_ledger_write_failure_is_not_a_booking(provider, event_logger):
    service = StorefrontService(
        provider,
        KeyValueConsumptionLedger(FailingStore()),
        event_logger=event_logger,
    )
    provider.snapshot = single_visit_snapshot("tx-1")
    asyncio.run(service.refresh())

    with pytest.raises(LedgerWriteError):
        service.book_workshop(make_workshop("ws-1"))

    assert StorefrontAuditEventType.WORKSHOP_BOOKED not in event_logger.types


def test_get_workshop_from_catalog(service):
    assert service.get_workshop("ws-1").id == "ws-1"
    with pytest.raises(LookupError):
        service.get_workshop("missing")


def test_sandbox_purchase_then_booking(ledger):
    sandbox = SandboxCommerceProvider()
    service = StorefrontService(sandbox, ledger)
    workshop = make_workshop("ws-1")

    asyncio.run(service.load_offerings())
    asyncio.run(service.purchase_package("singleVisit"))
    transaction_id = service.get_subscription_state().pass_transaction_id

    assert service.book_workshop(workshop).booked is True
    assert ledger.has(transaction_id) is True
    assert service.can_book_workshop(workshop) is False

    asyncio.run(service.purchase_package("singleVisit"))

    assert service.can_book_workshop(workshop) is True
    assert service.daily_passes_purchased_count() == 2


def test_sandbox_cancelled_purchase():
    sandbox = SandboxCommerceProvider()
    sandbox.cancel_next_purchase = True
    service = StorefrontService(sandbox, KeyValueConsumptionLedger(InMemoryKeyValueStore()))

    result = asyncio.run(service.purchase(MONTHLY_PACKAGE))

    assert result.success is False
    assert service.get_subscription_state().is_active is False
