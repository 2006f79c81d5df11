"""
Audit log Pydantic schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


class AuditLogResponse(BaseModel):
    """Schema for a single audit log entry."""
    id: int
    courier_id: Optional[int] = None
    tracking_id: str
    action: str
    description: str
    performed_by: Optional[int] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list response."""
    logs: List[AuditLogResponse]
    total: int
