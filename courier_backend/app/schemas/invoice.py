"""
Invoice Pydantic schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List
from courier_backend.app.models.enums import InvoiceStatus


class PriceLineItem(BaseModel):
    description: str
    amount: float


class PriceBreakdown(BaseModel):
    """Invoice line items; `total` always equals the computed price."""
    items: List[PriceLineItem]
    total: float


class InvoiceResponse(BaseModel):
    id: int
    courier_id: Optional[int] = None
    invoice_number: str
    amount: float
    customer_name: str
    customer_address: str
    status: InvoiceStatus
    generated_at: datetime

    class Config:
        from_attributes = True


class InvoiceDetailResponse(InvoiceResponse):
    """Invoice together with its price breakdown."""
    breakdown: Optional[PriceBreakdown] = None
