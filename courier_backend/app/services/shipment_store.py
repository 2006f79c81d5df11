"""
Shipment store.

Persistence and query functions for shipments, independent of who is asking.
Authorization lives in the access policy; these functions never commit.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, delete, desc

from courier_backend.app.models.shipment import Shipment
from courier_backend.app.models.proof_of_delivery import ProofOfDelivery
from courier_backend.app.models.invoice import Invoice
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.schemas.shipment import ShipmentFilter


async def get_shipment(db: AsyncSession, shipment_id: int) -> Optional[Shipment]:
    result = await db.execute(select(Shipment).where(Shipment.id == shipment_id))
    return result.scalar_one_or_none()


async def get_shipment_for_update(db: AsyncSession, shipment_id: int) -> Optional[Shipment]:
    """
    Load a shipment with a row lock for a read-modify-write.

    Concurrent mutations of the same shipment serialize on the lock; the
    SQLite dialect omits FOR UPDATE.
    """
    result = await db.execute(
        select(Shipment).where(Shipment.id == shipment_id).with_for_update()
    )
    return result.scalar_one_or_none()


async def get_by_tracking_id(db: AsyncSession, tracking_id: str) -> Optional[Shipment]:
    result = await db.execute(select(Shipment).where(Shipment.tracking_id == tracking_id))
    return result.scalar_one_or_none()


async def tracking_id_exists(db: AsyncSession, tracking_id: str) -> bool:
    result = await db.execute(
        select(func.count(Shipment.id)).where(Shipment.tracking_id == tracking_id)
    )
    return (result.scalar() or 0) > 0


def _apply_filter(query, shipment_filter: Optional[ShipmentFilter]):
    if shipment_filter is None:
        return query
    if shipment_filter.status is not None:
        query = query.where(Shipment.current_status == shipment_filter.status)
    if shipment_filter.assigned_to is not None:
        query = query.where(Shipment.assigned_to == shipment_filter.assigned_to)
    if shipment_filter.branch_id is not None:
        query = query.where(Shipment.branch_id == shipment_filter.branch_id)
    if shipment_filter.payment_status is not None:
        query = query.where(Shipment.payment_status == shipment_filter.payment_status)
    if shipment_filter.booked_by is not None:
        query = query.where(Shipment.booked_by == shipment_filter.booked_by)
    return query


async def list_shipments(
    db: AsyncSession,
    shipment_filter: Optional[ShipmentFilter] = None,
    page: int = 1,
    page_size: int = 50
) -> tuple[list[Shipment], int]:
    """
    List shipments newest first.

    Returns:
        (shipments on the requested page, total matching count)
    """
    count_query = _apply_filter(select(func.count(Shipment.id)), shipment_filter)
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * page_size
    query = _apply_filter(select(Shipment), shipment_filter).order_by(
        desc(Shipment.created_at), desc(Shipment.id)
    ).offset(offset).limit(page_size)

    result = await db.execute(query)
    return list(result.scalars().all()), total


def customer_match_condition(customer: Principal):
    """
    SQL counterpart of access_policy.is_customer_party.

    Booked-by is the durable link; phone and name equality on the parties
    is kept for shipments booked on a customer's behalf.
    """
    conditions = [Shipment.booked_by == customer.id]
    if customer.phone:
        conditions.append(Shipment.sender_phone == customer.phone)
        conditions.append(Shipment.receiver_phone == customer.phone)
    if customer.name and customer.name.strip():
        name = customer.name.strip().lower()
        conditions.append(func.lower(func.trim(Shipment.sender_name)) == name)
        conditions.append(func.lower(func.trim(Shipment.receiver_name)) == name)
    return or_(*conditions)


async def list_for_customer(
    db: AsyncSession,
    customer: Principal,
    page: int = 1,
    page_size: int = 50
) -> tuple[list[Shipment], int]:
    condition = customer_match_condition(customer)

    total = (await db.execute(select(func.count(Shipment.id)).where(condition))).scalar() or 0

    offset = (page - 1) * page_size
    result = await db.execute(
        select(Shipment).where(condition).order_by(
            desc(Shipment.created_at), desc(Shipment.id)
        ).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total


async def search_shipments(db: AsyncSession, term: str, limit: int = 100) -> list[Shipment]:
    """
    Case-insensitive search on tracking ID, receiver and sender names, and
    substring match on the receiver phone.
    """
    term = term.strip()
    if not term:
        return []

    pattern = f"%{term.lower()}%"
    query = select(Shipment).where(
        or_(
            func.lower(Shipment.tracking_id).like(pattern),
            func.lower(Shipment.receiver_name).like(pattern),
            func.lower(Shipment.sender_name).like(pattern),
            Shipment.receiver_phone.like(f"%{term}%"),
        )
    ).order_by(desc(Shipment.updated_at), desc(Shipment.id)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def recent_shipments(db: AsyncSession, limit: int = 10) -> list[Shipment]:
    """Most recently updated shipments."""
    result = await db.execute(
        select(Shipment).order_by(desc(Shipment.updated_at), desc(Shipment.id)).limit(limit)
    )
    return list(result.scalars().all())


async def add_shipment(db: AsyncSession, shipment: Shipment) -> Shipment:
    db.add(shipment)
    await db.flush()
    return shipment


async def delete_shipment(db: AsyncSession, shipment: Shipment) -> None:
    """Hard-delete a shipment together with its proof of delivery."""
    await db.execute(delete(ProofOfDelivery).where(ProofOfDelivery.courier_id == shipment.id))
    await db.delete(shipment)
    await db.flush()


async def get_proof_of_delivery(db: AsyncSession, shipment_id: int) -> Optional[ProofOfDelivery]:
    result = await db.execute(
        select(ProofOfDelivery).where(ProofOfDelivery.courier_id == shipment_id)
    )
    return result.scalar_one_or_none()


async def add_proof_of_delivery(db: AsyncSession, pod: ProofOfDelivery) -> ProofOfDelivery:
    db.add(pod)
    await db.flush()
    return pod


async def get_invoice(db: AsyncSession, invoice_id: int) -> Optional[Invoice]:
    return await db.get(Invoice, invoice_id)


async def list_invoices(db: AsyncSession, shipment_id: int) -> list[Invoice]:
    """All invoices issued for a shipment, oldest first."""
    result = await db.execute(
        select(Invoice).where(Invoice.courier_id == shipment_id).order_by(Invoice.id)
    )
    return list(result.scalars().all())


async def add_invoice(db: AsyncSession, invoice: Invoice) -> Invoice:
    db.add(invoice)
    await db.flush()
    return invoice
