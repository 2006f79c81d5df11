"""
Audit Log API Endpoints.

Global activity feed for the admin dashboard.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.db.session import get_db
from courier_backend.app.core.exceptions import ValidationError
from courier_backend.app.core.guards import require_admin
from courier_backend.app.schemas.audit import AuditLogResponse, AuditTrailResponse
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.services.audit import AuditAction, get_recent_activity, get_history_by_tracking_id

router = APIRouter(prefix="/logs", tags=["Audit Log"])


@router.get("", response_model=AuditTrailResponse)
async def get_activity_feed(
    limit: int = Query(50, ge=1, le=50, description="Number of entries"),
    action: Optional[str] = Query(None, description="Filter by action"),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Most recent audit entries across all shipments, newest first (admin only)."""
    if action is not None and action not in AuditAction.ALL:
        raise ValidationError.for_field("action", f"Unknown action '{action}'")
    logs = await get_recent_activity(db, limit=limit, action=action)
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=len(logs)
    )


@router.get("/tracking/{tracking_id}", response_model=AuditTrailResponse)
async def get_logs_by_tracking_id(
    tracking_id: str,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """History keyed by tracking ID; works for deleted shipments."""
    logs = await get_history_by_tracking_id(db, tracking_id)
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=len(logs)
    )
