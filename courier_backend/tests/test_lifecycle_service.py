"""
Shipment lifecycle service tests.

Covers every mutation with its audit entry, pricing, authorization before
writes, rollback on storage failure and the post-commit side effects.
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import TestingSessionLocal, RecordingSink, shipment_payload
from courier_backend.app.core.exceptions import (
    AuthorizationError, ConflictError, InvalidTransitionError, NotFoundError,
    StorageError, ValidationError
)
from courier_backend.app.core.timeutils import as_utc
from courier_backend.app.domain.shipments.lifecycle_service import ShipmentLifecycleService
from courier_backend.app.models.enums import (
    DeliveryType, InvoiceStatus, PaymentStatus, ShipmentStatus
)
from courier_backend.app.schemas.shipment import ShipmentResponse
from courier_backend.app.services import audit, directory, shipment_store
from courier_backend.app.services.audit import AuditAction
from courier_backend.app.services.cache import StatsCache, STATS_CACHE_KEY
from courier_backend.app.services.notification_service import NotificationDispatcher


async def reload(shipment_id):
    """Read a shipment through a separate session."""
    async with TestingSessionLocal() as session:
        return await shipment_store.get_shipment(session, shipment_id)


async def audit_actions(db, shipment_id):
    logs = await audit.get_logs(db, shipment_id=shipment_id)
    return [entry.action for entry in logs]


async def delivery_ready(service, admin, agent):
    shipment = await service.create_shipment(shipment_payload(), admin)
    await service.assign_agent(shipment.id, agent.id, admin)
    await service.change_status(shipment.id, ShipmentStatus.PICKED_UP, agent)
    return shipment


# createShipment

@pytest.mark.asyncio
async def test_create_shipment_defaults_and_audit(service, db_session, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)

    assert shipment.id is not None
    assert shipment.tracking_id.startswith("CRR-")
    assert shipment.current_status == ShipmentStatus.PENDING
    assert shipment.price == 70.0
    assert shipment.payment_status == PaymentStatus.UNPAID
    assert shipment.delivery_type == DeliveryType.NORMAL
    assert shipment.assigned_to is None
    assert shipment.booked_by == admin.id
    assert shipment.created_at == shipment.updated_at

    logs = await audit.get_logs(db_session, shipment_id=shipment.id)
    assert len(logs) == 1
    assert logs[0].action == AuditAction.CREATED
    assert logs[0].tracking_id == shipment.tracking_id
    assert logs[0].performed_by == admin.id


@pytest.mark.asyncio
async def test_create_express_shipment_price(service, admin):
    shipment = await service.create_shipment(
        shipment_payload(delivery_type="express"), admin
    )
    assert shipment.price == 105.0


@pytest.mark.asyncio
async def test_create_without_weight_or_distance_is_unpriced(service, admin):
    shipment = await service.create_shipment(
        shipment_payload(weight=None, distance=None), admin
    )
    assert shipment.price is None


@pytest.mark.asyncio
async def test_customer_booking_links_customer(service, customer):
    shipment = await service.create_shipment(shipment_payload(), customer)

    assert shipment.booked_by == customer.id
    fetched = await service.get_shipment(shipment.id, customer)
    assert fetched.id == shipment.id


@pytest.mark.asyncio
async def test_agent_cannot_create(service, db_session, agent):
    with pytest.raises(AuthorizationError):
        await service.create_shipment(shipment_payload(), agent)

    shipments, total = await shipment_store.list_shipments(db_session)
    assert total == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides, field", [
    ({"receiver_phone": "12345"}, "receiver_phone"),
    ({"receiver_name": "   "}, "receiver_name"),
    ({"weight": 0}, "weight"),
    ({"weight": 501}, "weight"),
    ({"distance": -3}, "distance"),
    ({"delivery_type": "overnight"}, "delivery_type"),
])
async def test_create_rejects_invalid_payload(service, db_session, admin, overrides, field):
    with pytest.raises(ValidationError) as exc_info:
        await service.create_shipment(shipment_payload(**overrides), admin)

    fields = [error["field"] for error in exc_info.value.details["errors"]]
    assert field in fields
    assert (await audit.get_logs(db_session)) == []


@pytest.mark.asyncio
async def test_create_missing_required_field(service, admin):
    payload = shipment_payload()
    del payload["delivery_address"]

    with pytest.raises(ValidationError):
        await service.create_shipment(payload, admin)


@pytest.mark.asyncio
async def test_create_with_unknown_branch(service, db_session, admin):
    with pytest.raises(NotFoundError):
        await service.create_shipment(shipment_payload(branch_id=999), admin)

    assert (await audit.get_logs(db_session)) == []


@pytest.mark.asyncio
async def test_create_with_branch(service, db_session, admin):
    branch = await directory.create_branch(db_session, {"name": "Main Hub", "address": "1 Depot Road"})
    shipment = await service.create_shipment(shipment_payload(branch_id=branch.id), admin)
    assert shipment.branch_id == branch.id


@pytest.mark.asyncio
async def test_created_shipment_reads_back_unchanged(service, db_session, admin):
    branch = await directory.create_branch(db_session, {"name": "Harbour Branch", "address": "2 Dock Lane"})
    payload = shipment_payload(
        sender_phone="9333333333",
        branch_id=branch.id,
        delivery_type="express",
        payment_status="paid",
        payment_method="card",
        notes="Fragile, keep upright",
        expected_delivery_date="2026-11-02",
    )
    shipment = await service.create_shipment(payload, admin)
    shipment_id = shipment.id

    async with TestingSessionLocal() as session:
        stored = await ShipmentLifecycleService(session).get_shipment(shipment_id, admin)

    for field, value in payload.items():
        assert getattr(stored, field) == value, field
    assert stored.price == 105.0


@pytest.mark.asyncio
async def test_repeated_reads_are_identical(service, db_session, admin):
    shipment = await service.create_shipment(shipment_payload(notes="Call on arrival"), admin)
    shipment_id = shipment.id
    created_at = as_utc(shipment.updated_at)

    reads = []
    for _ in range(2):
        async with TestingSessionLocal() as session:
            stored = await ShipmentLifecycleService(session).get_shipment(shipment_id, admin)
            reads.append(ShipmentResponse.model_validate(stored).model_dump())

    assert reads[0] == reads[1]
    assert reads[0]["updated_at"] == created_at
    assert await audit_actions(db_session, shipment_id) == [AuditAction.CREATED]


# updateShipment

@pytest.mark.asyncio
async def test_update_recomputes_price(service, db_session, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)
    created_at = shipment.updated_at

    updated = await service.update_shipment(shipment.id, {"weight": 20, "distance": 100}, admin)

    assert updated.price == 310.0
    assert as_utc(updated.updated_at) > as_utc(created_at)
    logs = await audit.get_logs(db_session, shipment_id=shipment.id)
    assert [entry.action for entry in logs] == [AuditAction.UPDATED, AuditAction.CREATED]
    assert "distance, weight" in logs[0].description
    assert "$70.00 → $310.00" in logs[0].description


@pytest.mark.asyncio
async def test_update_delivery_type_reprices(service, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)
    updated = await service.update_shipment(shipment.id, {"delivery_type": "express"}, admin)
    assert updated.price == 105.0


@pytest.mark.asyncio
async def test_update_only_touches_given_fields(service, admin):
    shipment = await service.create_shipment(shipment_payload(notes="fragile"), admin)
    updated = await service.update_shipment(shipment.id, {"payment_status": "paid"}, admin)

    assert updated.payment_status == PaymentStatus.PAID
    assert updated.notes == "fragile"
    assert updated.receiver_name == "Bob Receiver"
    assert updated.price == 70.0


@pytest.mark.asyncio
@pytest.mark.parametrize("patch", [
    {},
    {"receiver_name": None},
    {"delivery_address": ""},
    {"receiver_phone": "98765"},
    {"current_status": "delivered"},
    {"price": 1.0},
])
async def test_update_rejects_invalid_patch(service, db_session, admin, patch):
    shipment = await service.create_shipment(shipment_payload(), admin)

    with pytest.raises(ValidationError):
        await service.update_shipment(shipment.id, patch, admin)

    assert await audit_actions(db_session, shipment.id) == [AuditAction.CREATED]


@pytest.mark.asyncio
async def test_agent_cannot_update(service, db_session, admin, agent):
    shipment = await service.create_shipment(shipment_payload(), admin)
    await service.assign_agent(shipment.id, agent.id, admin)

    with pytest.raises(AuthorizationError):
        await service.update_shipment(shipment.id, {"notes": "leave at door"}, agent)


@pytest.mark.asyncio
async def test_update_missing_shipment(service, admin):
    with pytest.raises(NotFoundError):
        await service.update_shipment(12345, {"notes": "x"}, admin)


# changeStatus

@pytest.mark.asyncio
async def test_change_status_by_assigned_agent(service, db_session, admin, agent):
    shipment = await service.create_shipment(shipment_payload(), admin)
    await service.assign_agent(shipment.id, agent.id, admin)

    updated = await service.change_status(shipment.id, "picked_up", agent)

    assert updated.current_status == ShipmentStatus.PICKED_UP
    logs = await audit.get_logs(db_session, shipment_id=shipment.id)
    assert logs[0].action == AuditAction.STATUS_CHANGED
    assert logs[0].description == "Pending → Picked Up"
    assert logs[0].performed_by == agent.id


@pytest.mark.asyncio
async def test_unassigned_agent_cannot_change_status(service, db_session, admin, agent, other_agent):
    shipment = await service.create_shipment(shipment_payload(), admin)
    await service.assign_agent(shipment.id, agent.id, admin)
    shipment_id = shipment.id
    before = as_utc(shipment.updated_at)

    with pytest.raises(AuthorizationError):
        await service.change_status(shipment_id, ShipmentStatus.IN_TRANSIT, other_agent)

    stored = await reload(shipment_id)
    assert stored.current_status == ShipmentStatus.PENDING
    assert as_utc(stored.updated_at) == before
    assert await audit_actions(db_session, shipment_id) == [AuditAction.ASSIGNED, AuditAction.CREATED]


@pytest.mark.asyncio
async def test_customer_cannot_change_status(service, customer):
    shipment = await service.create_shipment(shipment_payload(), customer)

    with pytest.raises(AuthorizationError):
        await service.change_status(shipment.id, ShipmentStatus.CANCELLED, customer)


@pytest.mark.asyncio
async def test_backward_transition_rejected(service, db_session, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)
    shipment_id = shipment.id
    await service.change_status(shipment_id, ShipmentStatus.IN_TRANSIT, admin)

    with pytest.raises(InvalidTransitionError):
        await service.change_status(shipment_id, ShipmentStatus.PENDING, admin)

    assert len(await audit_actions(db_session, shipment_id)) == 2


@pytest.mark.asyncio
async def test_unknown_status_rejected(service, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)

    with pytest.raises(ValidationError):
        await service.change_status(shipment.id, "teleported", admin)


@pytest.mark.asyncio
async def test_permissive_transitions_when_enforcement_disabled(service, admin, monkeypatch):
    from courier_backend.app.core.config import settings
    monkeypatch.setattr(settings, "enforce_status_transitions", False)

    shipment = await service.create_shipment(shipment_payload(), admin)
    await service.change_status(shipment.id, ShipmentStatus.DELIVERED, admin)
    reopened = await service.change_status(shipment.id, ShipmentStatus.IN_TRANSIT, admin)

    assert reopened.current_status == ShipmentStatus.IN_TRANSIT


@pytest.mark.asyncio
async def test_shipment_with_proof_stays_delivered(service, db_session, admin, agent, monkeypatch):
    from courier_backend.app.core.config import settings
    monkeypatch.setattr(settings, "enforce_status_transitions", False)

    shipment = await delivery_ready(service, admin, agent)
    shipment_id = shipment.id
    pod = await service.complete_delivery(shipment_id, {"signee_name": "Bob", "signature_ref": "blob://sig"}, agent)
    pod_id = pod.id

    with pytest.raises(InvalidTransitionError):
        await service.change_status(shipment_id, ShipmentStatus.IN_TRANSIT, admin)

    stored = await reload(shipment_id)
    assert stored.current_status == ShipmentStatus.DELIVERED
    assert stored.pod_id == pod_id
    assert len(await audit_actions(db_session, shipment_id)) == 4


@pytest.mark.asyncio
async def test_delivered_without_proof_is_noted(service, db_session, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)
    delivered = await service.change_status(shipment.id, ShipmentStatus.DELIVERED, admin)

    assert delivered.pod_id is None
    logs = await audit.get_logs(db_session, shipment_id=shipment.id)
    assert logs[0].description == "Pending → Delivered (without proof of delivery)"


@pytest.mark.asyncio
async def test_updated_at_strictly_increases(service, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)
    stamps = [as_utc(shipment.updated_at)]

    for status in (ShipmentStatus.PICKED_UP, ShipmentStatus.IN_TRANSIT, ShipmentStatus.OUT_FOR_DELIVERY):
        shipment = await service.change_status(shipment.id, status, admin)
        stamps.append(as_utc(shipment.updated_at))

    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)


# assignAgent

@pytest.mark.asyncio
async def test_assign_and_reassign(service, db_session, admin, agent, other_agent):
    shipment = await service.create_shipment(shipment_payload(), admin)

    assigned = await service.assign_agent(shipment.id, agent.id, admin)
    assert assigned.assigned_to == agent.id

    reassigned = await service.assign_agent(shipment.id, other_agent.id, admin)
    assert reassigned.assigned_to == other_agent.id

    logs = await audit.get_logs(db_session, shipment_id=shipment.id)
    assert [entry.action for entry in logs[:2]] == [AuditAction.ASSIGNED, AuditAction.ASSIGNED]
    assert f"previously #{agent.id}" in logs[0].description


@pytest.mark.asyncio
async def test_assign_requires_an_agent(service, admin, customer):
    shipment = await service.create_shipment(shipment_payload(), admin)
    shipment_id = shipment.id

    with pytest.raises(NotFoundError):
        await service.assign_agent(shipment_id, customer.id, admin)
    with pytest.raises(NotFoundError):
        await service.assign_agent(shipment_id, 999, admin)
    with pytest.raises(ValidationError):
        await service.assign_agent(shipment_id, 0, admin)


@pytest.mark.asyncio
async def test_agent_cannot_assign(service, admin, agent, other_agent):
    shipment = await service.create_shipment(shipment_payload(), admin)
    await service.assign_agent(shipment.id, agent.id, admin)

    with pytest.raises(AuthorizationError):
        await service.assign_agent(shipment.id, other_agent.id, agent)


# completeDelivery

@pytest.mark.asyncio
async def test_complete_delivery(service, db_session, admin, agent):
    shipment = await delivery_ready(service, admin, agent)

    pod = await service.complete_delivery(shipment.id, {
        "signee_name": "Bob Receiver",
        "signature_ref": "blob://sig-1",
        "photo_ref": "blob://photo-1",
        "location": {"latitude": 19.07, "longitude": 72.87},
    }, agent)

    stored = await reload(shipment.id)
    assert stored.current_status == ShipmentStatus.DELIVERED
    assert stored.pod_id == pod.id
    assert pod.courier_id == shipment.id
    assert pod.signature_id == "blob://sig-1"
    assert pod.latitude == 19.07

    logs = await audit.get_logs(db_session, shipment_id=shipment.id)
    assert [entry.action for entry in logs] == [
        AuditAction.STATUS_CHANGED, AuditAction.STATUS_CHANGED, AuditAction.ASSIGNED, AuditAction.CREATED
    ]
    assert "Picked Up → Delivered" in logs[0].description
    assert "signed by Bob Receiver" in logs[0].description


@pytest.mark.asyncio
async def test_complete_delivery_twice_conflicts(service, db_session, admin, agent):
    shipment = await delivery_ready(service, admin, agent)
    shipment_id = shipment.id
    await service.complete_delivery(shipment_id, {"signee_name": "Bob", "signature_ref": "blob://sig"}, agent)

    with pytest.raises(ConflictError):
        await service.complete_delivery(shipment_id, {"signee_name": "Bob", "signature_ref": "blob://sig"}, agent)

    assert len(await audit_actions(db_session, shipment_id)) == 4


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"signee_name": "Bo", "signature_ref": "blob://sig"},
    {"signee_name": "  Bo  ", "signature_ref": "blob://sig"},
    {"signee_name": "Bob Receiver", "signature_ref": "   "},
    {"signee_name": "Bob Receiver"},
])
async def test_complete_delivery_validation(service, db_session, admin, agent, payload):
    shipment = await delivery_ready(service, admin, agent)

    with pytest.raises(ValidationError):
        await service.complete_delivery(shipment.id, payload, agent)

    stored = await reload(shipment.id)
    assert stored.current_status == ShipmentStatus.PICKED_UP
    assert stored.pod_id is None
    assert await shipment_store.get_proof_of_delivery(db_session, shipment.id) is None


@pytest.mark.asyncio
async def test_complete_delivery_on_cancelled_shipment(service, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)
    await service.change_status(shipment.id, ShipmentStatus.CANCELLED, admin)

    with pytest.raises(InvalidTransitionError):
        await service.complete_delivery(shipment.id, {"signee_name": "Bob", "signature_ref": "blob://sig"}, admin)


@pytest.mark.asyncio
async def test_unassigned_agent_cannot_complete_delivery(service, admin, agent, other_agent):
    shipment = await delivery_ready(service, admin, agent)

    with pytest.raises(AuthorizationError):
        await service.complete_delivery(
            shipment.id, {"signee_name": "Bob", "signature_ref": "blob://sig"}, other_agent
        )


# generateInvoice

@pytest.mark.asyncio
async def test_generate_invoice_is_idempotent(service, db_session, admin):
    shipment = await service.create_shipment(shipment_payload(payment_status="paid"), admin)

    first = await service.generate_invoice(shipment.id, admin)
    second = await service.generate_invoice(shipment.id, admin)

    assert first.id == second.id
    assert first.invoice_number == f"INV-{shipment.tracking_id}"
    assert first.amount == 70.0
    assert first.status == InvoiceStatus.PAID
    assert first.customer_name == "Alice Sender"

    stored = await reload(shipment.id)
    assert stored.invoice_id == first.id
    assert await audit_actions(db_session, shipment.id) == [AuditAction.UPDATED, AuditAction.CREATED]


@pytest.mark.asyncio
async def test_invoice_reissued_after_price_change(service, db_session, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)
    first = await service.generate_invoice(shipment.id, admin)
    await service.update_shipment(shipment.id, {"weight": 20, "distance": 100}, admin)

    second = await service.generate_invoice(shipment.id, admin)

    assert second.id != first.id
    assert second.amount == 310.0
    assert second.invoice_number == f"INV-{shipment.tracking_id}-2"
    invoices = await shipment_store.list_invoices(db_session, shipment.id)
    assert [invoice.status for invoice in invoices] == [InvoiceStatus.VOID, InvoiceStatus.UNPAID]


@pytest.mark.asyncio
async def test_invoice_reissued_after_payment(service, db_session, admin):
    shipment = await service.create_shipment(shipment_payload(), admin)
    shipment_id, tracking_id = shipment.id, shipment.tracking_id
    first = await service.generate_invoice(shipment_id, admin)
    first_id = first.id
    assert first.status == InvoiceStatus.UNPAID

    await service.update_shipment(shipment_id, {"payment_status": "paid"}, admin)
    second = await service.generate_invoice(shipment_id, admin)

    assert second.id != first_id
    assert second.status == InvoiceStatus.PAID
    assert second.amount == 70.0
    assert second.invoice_number == f"INV-{tracking_id}-2"
    invoices = await shipment_store.list_invoices(db_session, shipment_id)
    assert [invoice.status for invoice in invoices] == [InvoiceStatus.VOID, InvoiceStatus.PAID]

    third = await service.generate_invoice(shipment_id, admin)
    assert third.id == second.id


@pytest.mark.asyncio
async def test_only_admin_generates_invoices(service, admin, agent):
    shipment = await delivery_ready(service, admin, agent)

    with pytest.raises(AuthorizationError):
        await service.generate_invoice(shipment.id, agent)


# deleteShipment

@pytest.mark.asyncio
async def test_delete_keeps_audit_trail(service, db_session, admin, agent):
    shipment = await delivery_ready(service, admin, agent)
    await service.complete_delivery(shipment.id, {"signee_name": "Bob", "signature_ref": "blob://sig"}, agent)
    shipment_id, tracking_id = shipment.id, shipment.tracking_id

    await service.delete_shipment(shipment_id, admin)

    with pytest.raises(NotFoundError):
        await service.get_shipment(shipment_id, admin)
    assert await shipment_store.get_proof_of_delivery(db_session, shipment_id) is None

    logs = await audit.get_history_by_tracking_id(db_session, tracking_id)
    assert logs[0].action == AuditAction.DELETED
    assert logs[0].courier_id == shipment_id
    assert len(logs) == 5


@pytest.mark.asyncio
async def test_customer_cannot_delete(service, db_session, customer):
    shipment = await service.create_shipment(shipment_payload(), customer)
    shipment_id = shipment.id

    with pytest.raises(AuthorizationError):
        await service.delete_shipment(shipment_id, customer)

    assert await reload(shipment_id) is not None
    assert await audit_actions(db_session, shipment_id) == [AuditAction.CREATED]


@pytest.mark.asyncio
async def test_delete_missing_shipment(service, admin):
    with pytest.raises(NotFoundError):
        await service.delete_shipment(404, admin)


# Atomicity and side effects

@pytest.mark.asyncio
async def test_storage_failure_rolls_back(service, db_session, admin, monkeypatch):
    shipment = await service.create_shipment(shipment_payload(), admin)
    shipment_id = shipment.id
    before = as_utc(shipment.updated_at)

    async def broken_log(*args, **kwargs):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(audit, "log_shipment_event", broken_log)

    with pytest.raises(StorageError):
        await service.change_status(shipment_id, ShipmentStatus.PICKED_UP, admin)

    stored = await reload(shipment_id)
    assert stored.current_status == ShipmentStatus.PENDING
    assert as_utc(stored.updated_at) == before


@pytest.mark.asyncio
async def test_failed_create_leaves_no_shipment(service, db_session, admin, monkeypatch):
    async def broken_log(*args, **kwargs):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(audit, "log_shipment_event", broken_log)

    with pytest.raises(StorageError):
        await service.create_shipment(shipment_payload(), admin)

    async with TestingSessionLocal() as session:
        shipments, total = await shipment_store.list_shipments(session)
    assert total == 0


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_change(db_session, admin):
    class BrokenSink:
        async def send(self, channel, recipient, message):
            raise ConnectionError("gateway down")

    service = ShipmentLifecycleService(db_session, notifier=NotificationDispatcher(BrokenSink()))
    shipment = await service.create_shipment(shipment_payload(), admin)
    updated = await service.change_status(shipment.id, ShipmentStatus.PICKED_UP, admin)

    assert updated.current_status == ShipmentStatus.PICKED_UP
    assert (await reload(shipment.id)).current_status == ShipmentStatus.PICKED_UP


@pytest.mark.asyncio
async def test_notifications_sent_after_commit(db_session, admin, agent):
    sink = RecordingSink()
    service = ShipmentLifecycleService(db_session, notifier=NotificationDispatcher(sink))

    shipment = await service.create_shipment(shipment_payload(), admin)
    await service.assign_agent(shipment.id, agent.id, admin)
    await service.change_status(shipment.id, ShipmentStatus.PICKED_UP, agent)

    recipients = [recipient for _, recipient, _ in sink.sent]
    assert recipients[0] == "9222222222"
    assert agent.phone in recipients
    assert any("PICKED UP" in message for _, _, message in sink.sent)


@pytest.mark.asyncio
async def test_mutation_invalidates_stats_cache(service, redis_client_session, admin):
    await StatsCache(redis_client_session).set(STATS_CACHE_KEY, {"total": 0}, 30)

    await service.create_shipment(shipment_payload(), admin)

    assert await redis_client_session.get(STATS_CACHE_KEY) is None


# Queries

@pytest.mark.asyncio
async def test_listing_is_scoped_per_principal(service, admin, agent, other_agent, customer):
    mine = await service.create_shipment(shipment_payload(), customer)
    theirs = await service.create_shipment(shipment_payload(receiver_name="Someone Else"), admin)
    await service.assign_agent(theirs.id, agent.id, admin)

    all_shipments, total = await service.list_shipments_for_principal(admin)
    assert total == 2

    agent_shipments, agent_total = await service.list_shipments_for_principal(agent)
    assert agent_total == 1 and agent_shipments[0].id == theirs.id

    _, other_total = await service.list_shipments_for_principal(other_agent)
    assert other_total == 0

    customer_shipments, customer_total = await service.list_shipments_for_principal(customer)
    assert customer_total == 1 and customer_shipments[0].id == mine.id


@pytest.mark.asyncio
async def test_search_respects_read_access(service, admin, customer):
    mine = await service.create_shipment(shipment_payload(receiver_name="Zed Zulu"), customer)
    await service.create_shipment(shipment_payload(receiver_name="Zara Zulu"), admin)

    assert len(await service.search_shipments("zulu", admin)) == 2
    results = await service.search_shipments("zulu", customer)
    assert [s.id for s in results] == [mine.id]

    by_tracking = await service.search_shipments(mine.tracking_id.lower(), admin)
    assert [s.id for s in by_tracking] == [mine.id]


@pytest.mark.asyncio
async def test_get_by_tracking_id(service, admin, customer):
    shipment = await service.create_shipment(shipment_payload(), admin)

    found = await service.get_by_tracking_id(shipment.tracking_id, admin)
    assert found.id == shipment.id

    with pytest.raises(AuthorizationError):
        await service.get_by_tracking_id(shipment.tracking_id, customer)
    with pytest.raises(NotFoundError):
        await service.get_by_tracking_id("CRR-NOPE-0000", admin)
