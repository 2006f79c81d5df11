"""
Audit logging service for shipment history.

Entries are appended inside the caller's transaction so a shipment change and
its audit entry are committed (or rolled back) together. There is no update
or delete path for entries.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from courier_backend.app.core.config import settings
from courier_backend.app.core.timeutils import utcnow
from courier_backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    DELETED = "deleted"

    ALL = (CREATED, UPDATED, STATUS_CHANGED, ASSIGNED, DELETED)


async def log_event(
    db: AsyncSession,
    action: str,
    tracking_id: str,
    description: str,
    courier_id: Optional[int] = None,
    performed_by: Optional[int] = None
) -> AuditLog:
    """
    Append a shipment event to the audit log.

    The entry is flushed, not committed; the caller owns the transaction.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        tracking_id: Tracking ID of the shipment (kept after deletion)
        description: Human-readable description of the change
        courier_id: Internal shipment ID
        performed_by: ID of the acting principal

    Returns:
        Created AuditLog instance
    """
    if action not in AuditAction.ALL:
        raise ValueError(f"Unknown audit action: {action}")

    audit_log = AuditLog(
        courier_id=courier_id,
        tracking_id=tracking_id,
        action=action,
        description=description,
        performed_by=performed_by,
        timestamp=utcnow()
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def log_shipment_event(
    db: AsyncSession,
    shipment,
    action: str,
    description: str,
    performed_by: Optional[int] = None
) -> AuditLog:
    """Shortcut for `log_event` taking the shipment itself."""
    return await log_event(
        db=db,
        action=action,
        tracking_id=shipment.tracking_id,
        description=description,
        courier_id=shipment.id,
        performed_by=performed_by
    )


async def get_shipment_history(
    db: AsyncSession,
    courier_id: int,
    limit: Optional[int] = None
) -> list[AuditLog]:
    """
    Get the audit history of one shipment, newest first.

    Args:
        db: Database session
        courier_id: Shipment ID (still valid after the shipment is deleted)
        limit: Maximum number of records, unbounded when None

    Returns:
        List of AuditLog instances
    """
    query = select(AuditLog).where(
        AuditLog.courier_id == courier_id
    ).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if limit:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_history_by_tracking_id(db: AsyncSession, tracking_id: str) -> list[AuditLog]:
    """Audit history keyed by tracking ID, newest first."""
    query = select(AuditLog).where(
        AuditLog.tracking_id == tracking_id
    ).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_recent_activity(
    db: AsyncSession,
    limit: Optional[int] = None,
    action: Optional[str] = None
) -> list[AuditLog]:
    """
    Retrieve the global activity feed, newest first.

    Args:
        db: Database session
        limit: Number of entries, capped at settings.audit_feed_limit
        action: Filter by action type

    Returns:
        List of AuditLog instances
    """
    cap = settings.audit_feed_limit
    limit = min(limit or cap, cap)

    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_logs(
    db: AsyncSession,
    shipment_id: Optional[int] = None,
    limit: Optional[int] = None
) -> list[AuditLog]:
    """History of one shipment when `shipment_id` is given, else the global feed."""
    if shipment_id is not None:
        return await get_shipment_history(db, shipment_id, limit=limit)
    return await get_recent_activity(db, limit=limit)
