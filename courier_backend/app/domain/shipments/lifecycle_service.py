"""
Shipment Lifecycle Service (Domain Logic).

Orchestrates every shipment mutation: create, update, status change, agent
assignment, delivery completion with proof, invoice generation and deletion.

Each mutation runs as one transaction:
1. Parse and validate the payload
2. Load the target row under lock
3. Enforce the access policy (before any write)
4. Apply the change, recompute price, refresh updated_at
5. Append exactly one audit entry
6. Commit (rollback on failure, nothing partial is visible)

Cache invalidation and notifications happen after the commit and never fail
the operation.
"""

import logging
from typing import Optional, Union, Mapping, Any
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from courier_backend.app.core.exceptions import (
    ConflictError, InvalidTransitionError, NotFoundError, StorageError, ValidationError
)
from courier_backend.app.core.timeutils import utcnow, next_timestamp
from courier_backend.app.domain.identifiers import IdentifierGenerator
from courier_backend.app.domain.pricing.calculator import PricingCalculator
from courier_backend.app.domain.shipments import access_policy
from courier_backend.app.domain.shipments.access_policy import ShipmentOperation
from courier_backend.app.domain.shipments.status_workflow import (
    INITIAL_STATUS, validate_transition, format_status_change
)
from courier_backend.app.models.enums import (
    ShipmentStatus, InvoiceStatus, PaymentStatus, UserRole
)
from courier_backend.app.models.invoice import Invoice
from courier_backend.app.models.proof_of_delivery import ProofOfDelivery
from courier_backend.app.models.shipment import Shipment
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.schemas.shipment import (
    ShipmentCreate, ShipmentUpdate, ShipmentFilter, StatusChangeRequest, AssignAgentRequest,
    CompleteDeliveryRequest
)
from courier_backend.app.services import audit, directory, shipment_store
from courier_backend.app.services.audit import AuditAction
from courier_backend.app.services.cache import StatsCache
from courier_backend.app.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

MAX_TRACKING_ID_ATTEMPTS = 5
BILLING_FIELDS = ("weight", "distance", "delivery_type")

Payload = Union[Mapping[str, Any], Any]


def parse_payload(model, payload: Payload):
    """Validate a payload into `model`, raising the app ValidationError."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


class ShipmentLifecycleService:
    """
    Usage:
        service = ShipmentLifecycleService(db, notifier=dispatcher, cache=stats_cache)
        shipment = await service.create_shipment({...}, principal)
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[NotificationDispatcher] = None,
        cache: Optional[StatsCache] = None
    ):
        self.db = db
        self.notifier = notifier
        self.cache = cache

    # Transaction helpers

    async def _run(self, operation: str, shipment_ref: str, work):
        """Run `work` and commit; any failure rolls the whole unit back."""
        try:
            result = await work()
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.warning("%s on %s rejected by a constraint: %s", operation, shipment_ref, exc.orig)
            raise ConflictError(f"Conflicting data for shipment {shipment_ref}") from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("%s on %s rolled back: %s", operation, shipment_ref, exc)
            raise StorageError() from exc
        except Exception:
            await self.db.rollback()
            raise
        logger.info("%s committed for shipment %s", operation, shipment_ref)
        return result

    async def _after_commit(self, notify=None) -> None:
        if self.cache is not None:
            await self.cache.invalidate()
        if self.notifier is not None and notify is not None:
            try:
                await notify(self.notifier)
            except Exception:
                logger.warning("Post-commit notification failed", exc_info=True)

    async def _load_for_update(self, shipment_id: int) -> Shipment:
        shipment = await shipment_store.get_shipment_for_update(self.db, shipment_id)
        if not shipment:
            raise NotFoundError("Shipment", shipment_id)
        return shipment

    async def _ensure_branch(self, branch_id: Optional[int]) -> None:
        if branch_id is not None:
            await directory.get_branch(self.db, branch_id)

    async def _new_tracking_id(self) -> str:
        for _ in range(MAX_TRACKING_ID_ATTEMPTS):
            tracking_id = IdentifierGenerator.generate_tracking_id()
            if not await shipment_store.tracking_id_exists(self.db, tracking_id):
                return tracking_id
        raise ConflictError("Could not allocate a unique tracking ID")

    # Mutations

    async def create_shipment(self, payload: Payload, principal: Principal) -> Shipment:
        """
        Book a new shipment.

        Raises:
            ValidationError: Missing/invalid fields or out-of-bounds weight/distance
            AuthorizationError: Principal may not create shipments
            NotFoundError: Referenced branch does not exist
        """
        data = parse_payload(ShipmentCreate, payload)
        access_policy.enforce(principal, ShipmentOperation.CREATE)

        async def work():
            await self._ensure_branch(data.branch_id)
            now = utcnow()
            shipment = Shipment(
                tracking_id=await self._new_tracking_id(),
                current_status=INITIAL_STATUS,
                booked_by=principal.id,
                price=PricingCalculator.compute_price(data.weight, data.distance, data.delivery_type),
                created_at=now,
                updated_at=now,
                **data.model_dump()
            )
            await shipment_store.add_shipment(self.db, shipment)
            await audit.log_shipment_event(
                self.db, shipment, AuditAction.CREATED,
                f"Shipment {shipment.tracking_id} booked from {shipment.sender_name} to {shipment.receiver_name}",
                performed_by=principal.id
            )
            return shipment

        shipment = await self._run("create", "new shipment", work)
        await self._after_commit(lambda notifier: notifier.notify_created(shipment))
        return shipment

    async def update_shipment(self, shipment_id: int, payload: Payload, principal: Principal) -> Shipment:
        """
        Apply a partial update. Only fields present in the patch change; the
        price is recomputed when weight, distance or delivery type is patched.
        """
        patch = parse_payload(ShipmentUpdate, payload)
        changes = patch.changes()

        async def work():
            shipment = await self._load_for_update(shipment_id)
            access_policy.enforce(principal, ShipmentOperation.UPDATE, shipment)
            if "branch_id" in changes:
                await self._ensure_branch(changes["branch_id"])

            for field, value in changes.items():
                setattr(shipment, field, value)

            description = f"Updated fields: {', '.join(sorted(changes))}"
            if any(field in changes for field in BILLING_FIELDS):
                old_price = shipment.price
                shipment.price = PricingCalculator.compute_price(
                    shipment.weight, shipment.distance, shipment.delivery_type
                )
                if shipment.price != old_price:
                    description += f"; price {_money(old_price)} → {_money(shipment.price)}"

            shipment.updated_at = next_timestamp(shipment.updated_at)
            await audit.log_shipment_event(
                self.db, shipment, AuditAction.UPDATED, description, performed_by=principal.id
            )
            return shipment

        shipment = await self._run("update", f"#{shipment_id}", work)
        await self._after_commit()
        return shipment

    async def change_status(self, shipment_id: int, new_status: Union[ShipmentStatus, str], principal: Principal) -> Shipment:
        """
        Move a shipment to another status.

        Marking `delivered` this way attaches no proof; the audit entry says so.
        A shipment delivered with proof stays delivered, even when transition
        enforcement is off.
        """
        request = parse_payload(StatusChangeRequest, {"status": new_status})

        async def work():
            shipment = await self._load_for_update(shipment_id)
            access_policy.enforce(principal, ShipmentOperation.CHANGE_STATUS, shipment)

            old_status = shipment.current_status
            validate_transition(old_status, request.status)
            if shipment.pod_id is not None and request.status != ShipmentStatus.DELIVERED:
                raise InvalidTransitionError(old_status.value, request.status.value)

            description = format_status_change(old_status, request.status)
            if request.status == ShipmentStatus.DELIVERED and shipment.pod_id is None:
                description += " (without proof of delivery)"

            shipment.current_status = request.status
            shipment.updated_at = next_timestamp(shipment.updated_at)
            await audit.log_shipment_event(
                self.db, shipment, AuditAction.STATUS_CHANGED, description, performed_by=principal.id
            )
            return shipment

        shipment = await self._run("change_status", f"#{shipment_id}", work)
        await self._after_commit(lambda notifier: notifier.notify_status_change(shipment))
        return shipment

    async def assign_agent(self, shipment_id: int, agent_id: int, principal: Principal) -> Shipment:
        """Assign (or reassign) a shipment to an active agent. Admin only."""
        request = parse_payload(AssignAgentRequest, {"agent_id": agent_id})

        async def work():
            shipment = await self._load_for_update(shipment_id)
            access_policy.enforce(principal, ShipmentOperation.ASSIGN, shipment)
            agent = await directory.get_agent(self.db, request.agent_id)

            previous = shipment.assigned_to
            shipment.assigned_to = agent.id
            shipment.updated_at = next_timestamp(shipment.updated_at)

            description = f"Assigned to agent {agent.name} (#{agent.id})"
            if previous is not None and previous != agent.id:
                description += f", previously #{previous}"
            await audit.log_shipment_event(
                self.db, shipment, AuditAction.ASSIGNED, description, performed_by=principal.id
            )
            return shipment, agent

        shipment, agent = await self._run("assign", f"#{shipment_id}", work)
        await self._after_commit(lambda notifier: notifier.notify_assigned(shipment, agent))
        return shipment

    async def complete_delivery(self, shipment_id: int, payload: Payload, principal: Principal) -> ProofOfDelivery:
        """
        Capture proof of delivery and mark the shipment delivered.

        Raises:
            ValidationError: Signee shorter than 3 characters, missing signature
            ConflictError: Proof already captured for this shipment
            InvalidTransitionError: Shipment is already terminal
        """
        request = parse_payload(CompleteDeliveryRequest, payload)

        async def work():
            shipment = await self._load_for_update(shipment_id)
            access_policy.enforce(principal, ShipmentOperation.COMPLETE_DELIVERY, shipment)

            if shipment.pod_id is not None:
                raise ConflictError(
                    f"Proof of delivery already captured for shipment {shipment.tracking_id}",
                    details={"pod_id": shipment.pod_id}
                )
            old_status = shipment.current_status
            validate_transition(old_status, ShipmentStatus.DELIVERED)

            pod = ProofOfDelivery(
                courier_id=shipment.id,
                signee_name=request.signee_name,
                signature_id=request.signature_ref,
                photo_id=request.photo_ref,
                latitude=request.location.latitude if request.location else None,
                longitude=request.location.longitude if request.location else None,
                timestamp=utcnow()
            )
            await shipment_store.add_proof_of_delivery(self.db, pod)

            shipment.current_status = ShipmentStatus.DELIVERED
            shipment.pod_id = pod.id
            shipment.updated_at = next_timestamp(shipment.updated_at)

            description = (
                f"{format_status_change(old_status, ShipmentStatus.DELIVERED)}. "
                f"Proof of delivery captured, signed by {pod.signee_name}"
            )
            if pod.photo_id:
                description += ", photo attached"
            await audit.log_shipment_event(
                self.db, shipment, AuditAction.STATUS_CHANGED, description, performed_by=principal.id
            )
            return shipment, pod

        shipment, pod = await self._run("complete_delivery", f"#{shipment_id}", work)
        await self._after_commit(lambda notifier: notifier.notify_status_change(shipment))
        return pod

    async def generate_invoice(self, shipment_id: int, principal: Principal) -> Invoice:
        """
        Issue (or return) the shipment's invoice.

        Idempotent: while the current invoice still matches the shipment price
        and payment status, it is returned as is, with no new row and no
        audit entry. Otherwise the stale invoice is voided and a new one with
        the next number is issued.
        """
        async def work():
            shipment = await self._load_for_update(shipment_id)
            access_policy.enforce(principal, ShipmentOperation.GENERATE_INVOICE, shipment)

            amount = shipment.price if shipment.price is not None else 0.0
            expected_status = _invoice_status(shipment.payment_status)
            if shipment.invoice_id is not None:
                current = await shipment_store.get_invoice(self.db, shipment.invoice_id)
                if current and current.status == expected_status and current.amount == amount:
                    return current, False

            previous = await shipment_store.list_invoices(self.db, shipment.id)
            for stale in previous:
                if stale.status != InvoiceStatus.VOID:
                    stale.status = InvoiceStatus.VOID

            invoice = Invoice(
                courier_id=shipment.id,
                invoice_number=IdentifierGenerator.invoice_number(shipment.tracking_id, len(previous) + 1),
                amount=amount,
                customer_name=shipment.sender_name,
                customer_address=shipment.pickup_address,
                status=expected_status,
                generated_at=utcnow()
            )
            await shipment_store.add_invoice(self.db, invoice)

            shipment.invoice_id = invoice.id
            shipment.updated_at = next_timestamp(shipment.updated_at)

            description = f"Invoice {invoice.invoice_number} generated for {_money(invoice.amount)}"
            if previous:
                description += f", replacing {previous[-1].invoice_number}"
            await audit.log_shipment_event(
                self.db, shipment, AuditAction.UPDATED, description, performed_by=principal.id
            )
            return invoice, True

        invoice, issued = await self._run("generate_invoice", f"#{shipment_id}", work)
        if issued:
            await self._after_commit()
        return invoice

    async def delete_shipment(self, shipment_id: int, principal: Principal) -> None:
        """
        Hard-delete a shipment (admin only). The audit trail survives with
        the tracking ID and the now dangling shipment ID.
        """
        async def work():
            shipment = await self._load_for_update(shipment_id)
            access_policy.enforce(principal, ShipmentOperation.DELETE, shipment)

            tracking_id = shipment.tracking_id
            await audit.log_event(
                self.db,
                action=AuditAction.DELETED,
                tracking_id=tracking_id,
                description=f"Shipment {tracking_id} deleted (status was {shipment.current_status.label})",
                courier_id=shipment.id,
                performed_by=principal.id
            )
            await shipment_store.delete_shipment(self.db, shipment)
            return tracking_id

        await self._run("delete", f"#{shipment_id}", work)
        await self._after_commit()

    # Queries

    async def get_shipment(self, shipment_id: int, principal: Principal) -> Shipment:
        shipment = await shipment_store.get_shipment(self.db, shipment_id)
        if not shipment:
            raise NotFoundError("Shipment", shipment_id)
        access_policy.enforce(principal, ShipmentOperation.READ, shipment)
        return shipment

    async def get_by_tracking_id(self, tracking_id: str, principal: Principal) -> Shipment:
        shipment = await shipment_store.get_by_tracking_id(self.db, tracking_id)
        if not shipment:
            raise NotFoundError("Shipment", tracking_id)
        access_policy.enforce(principal, ShipmentOperation.READ, shipment)
        return shipment

    async def list_shipments_for_principal(
        self,
        principal: Principal,
        page: int = 1,
        page_size: int = 50,
        shipment_filter=None
    ) -> tuple[list[Shipment], int]:
        """
        Shipments visible to the principal: everything for admins (optionally
        filtered), the agent's jobs, or the customer's own shipments.
        """
        if principal.role == UserRole.ADMIN:
            return await shipment_store.list_shipments(self.db, shipment_filter, page, page_size)

        if principal.role == UserRole.AGENT:
            agent_filter = ShipmentFilter(
                assigned_to=principal.id,
                status=shipment_filter.status if shipment_filter else None
            )
            return await shipment_store.list_shipments(self.db, agent_filter, page, page_size)

        return await shipment_store.list_for_customer(self.db, principal, page, page_size)

    async def search_shipments(self, term: str, principal: Principal) -> list[Shipment]:
        """Search results restricted to what the principal may read."""
        results = await shipment_store.search_shipments(self.db, term)
        return [
            shipment for shipment in results
            if access_policy.can_perform(principal, ShipmentOperation.READ, shipment)
        ]


def _invoice_status(payment_status: PaymentStatus) -> InvoiceStatus:
    return InvoiceStatus.PAID if payment_status == PaymentStatus.PAID else InvoiceStatus.UNPAID


def _money(value: Optional[float]) -> str:
    if value is None:
        return "unpriced"
    return f"${value:.2f}"
