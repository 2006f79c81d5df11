"""
Shipment API Endpoints.

Thin HTTP layer over the shipment lifecycle service. Authorization and
validation happen in the service; errors surface through the global
exception handlers.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.db.session import get_db
from courier_backend.app.core.dependencies import get_current_principal, get_lifecycle_service
from courier_backend.app.core.exceptions import NotFoundError
from courier_backend.app.core.guards import require_admin
from courier_backend.app.domain.pricing.calculator import PricingCalculator
from courier_backend.app.domain.shipments.lifecycle_service import ShipmentLifecycleService
from courier_backend.app.models.enums import ShipmentStatus, PaymentStatus
from courier_backend.app.schemas.audit import AuditLogResponse, AuditTrailResponse
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.schemas.invoice import InvoiceDetailResponse, InvoiceResponse
from courier_backend.app.schemas.shipment import (
    ShipmentCreate, ShipmentUpdate, ShipmentResponse, ShipmentListResponse, ShipmentFilter,
    StatusChangeRequest, AssignAgentRequest, CompleteDeliveryRequest, ProofOfDeliveryResponse
)
from courier_backend.app.services import audit, shipment_store
from courier_backend.app.services.statistics import StatisticsService

router = APIRouter(prefix="/shipments", tags=["Shipments"])


@router.post("", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_shipment(
    shipment_data: ShipmentCreate,
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """
    Book a new shipment (admins and customers).

    Assigns the tracking ID, starts in `pending` and prices the shipment when
    weight or distance is given.
    """
    shipment = await service.create_shipment(shipment_data, principal)
    return ShipmentResponse.model_validate(shipment)


@router.get("", response_model=ShipmentListResponse)
async def list_shipments(
    status_filter: Optional[ShipmentStatus] = Query(None, alias="status"),
    assigned_to: Optional[int] = Query(None),
    branch_id: Optional[int] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """
    List the shipments visible to the caller.

    Admins see everything and may filter; agents see their assigned jobs;
    customers see the shipments they booked or appear on.
    """
    shipment_filter = ShipmentFilter(
        status=status_filter,
        assigned_to=assigned_to,
        branch_id=branch_id,
        payment_status=payment_status
    )
    shipments, total = await service.list_shipments_for_principal(
        principal, page=page, page_size=page_size, shipment_filter=shipment_filter
    )
    return ShipmentListResponse(
        shipments=[ShipmentResponse.model_validate(s) for s in shipments],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/search", response_model=list[ShipmentResponse])
async def search_shipments(
    term: str = Query(..., min_length=1, max_length=100),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """Search by tracking ID, names or receiver phone, limited to readable shipments."""
    shipments = await service.search_shipments(term, principal)
    return [ShipmentResponse.model_validate(s) for s in shipments]


@router.get("/recent", response_model=list[ShipmentResponse])
async def recent_shipments(
    limit: int = Query(10, ge=1, le=50),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Most recently updated shipments (admin dashboard)."""
    shipments = await StatisticsService.get_recent_shipments(db, limit)
    return [ShipmentResponse.model_validate(s) for s in shipments]


@router.get("/track/{tracking_id}", response_model=ShipmentResponse)
async def track_shipment(
    tracking_id: str = Path(..., min_length=1, max_length=40),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """Look a shipment up by its tracking ID."""
    shipment = await service.get_by_tracking_id(tracking_id, principal)
    return ShipmentResponse.model_validate(shipment)


@router.get("/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    shipment = await service.get_shipment(shipment_id, principal)
    return ShipmentResponse.model_validate(shipment)


@router.patch("/{shipment_id}", response_model=ShipmentResponse)
async def update_shipment(
    shipment_data: ShipmentUpdate,
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """
    Partially update a shipment (admin only).

    Only fields present in the body change. Price is recomputed when weight,
    distance or delivery type is included.
    """
    shipment = await service.update_shipment(shipment_id, shipment_data, principal)
    return ShipmentResponse.model_validate(shipment)


@router.post("/{shipment_id}/status", response_model=ShipmentResponse)
async def change_status(
    request: StatusChangeRequest,
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """Change status (admin, or the assigned agent)."""
    shipment = await service.change_status(shipment_id, request.status, principal)
    return ShipmentResponse.model_validate(shipment)


@router.post("/{shipment_id}/assign", response_model=ShipmentResponse)
async def assign_agent(
    request: AssignAgentRequest,
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """Assign the shipment to an agent (admin only)."""
    shipment = await service.assign_agent(shipment_id, request.agent_id, principal)
    return ShipmentResponse.model_validate(shipment)


@router.post("/{shipment_id}/complete-delivery", response_model=ProofOfDeliveryResponse, status_code=status.HTTP_201_CREATED)
async def complete_delivery(
    request: CompleteDeliveryRequest,
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """
    Capture proof of delivery and mark the shipment delivered.

    Signature and photo are blob references obtained from POST /blobs.
    """
    pod = await service.complete_delivery(shipment_id, request, principal)
    return ProofOfDeliveryResponse.model_validate(pod)


@router.get("/{shipment_id}/proof-of-delivery", response_model=ProofOfDeliveryResponse)
async def get_proof_of_delivery(
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service),
    db: AsyncSession = Depends(get_db)
):
    await service.get_shipment(shipment_id, principal)
    pod = await shipment_store.get_proof_of_delivery(db, shipment_id)
    if not pod:
        raise NotFoundError("Proof of delivery for shipment", shipment_id)
    return ProofOfDeliveryResponse.model_validate(pod)


@router.post("/{shipment_id}/invoice", response_model=InvoiceDetailResponse)
async def generate_invoice(
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """
    Generate the shipment invoice (admin only).

    Returns the existing invoice when it is still current.
    """
    invoice = await service.generate_invoice(shipment_id, principal)
    shipment = await service.get_shipment(shipment_id, principal)
    response = InvoiceDetailResponse.model_validate(invoice)
    response.breakdown = PricingCalculator.price_breakdown(
        shipment.weight, shipment.distance, shipment.delivery_type
    )
    return response


@router.get("/{shipment_id}/invoices", response_model=list[InvoiceResponse])
async def list_invoices(
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service),
    db: AsyncSession = Depends(get_db)
):
    """Every invoice issued for the shipment, oldest first."""
    await service.get_shipment(shipment_id, principal)
    invoices = await shipment_store.list_invoices(db, shipment_id)
    return [InvoiceResponse.model_validate(i) for i in invoices]


@router.delete("/{shipment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shipment(
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service)
):
    """Hard-delete a shipment (admin only). Its audit trail is kept."""
    await service.delete_shipment(shipment_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{shipment_id}/logs", response_model=AuditTrailResponse)
async def get_shipment_logs(
    shipment_id: int = Path(..., description="Shipment ID"),
    principal: Principal = Depends(get_current_principal),
    service: ShipmentLifecycleService = Depends(get_lifecycle_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Audit history of one shipment, newest first.

    Admins can read the history of deleted shipments too.
    """
    if not principal.is_admin:
        await service.get_shipment(shipment_id, principal)
    logs = await audit.get_logs(db, shipment_id=shipment_id)
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=len(logs)
    )
