"""
Statistics Schemas.

Read-only views derived from the shipments table.
"""

from pydantic import BaseModel
from typing import Dict


class ShipmentStats(BaseModel):
    """Global dashboard stats."""
    total: int
    by_status: Dict[str, int]
    total_revenue: float


class AgentStats(BaseModel):
    """Per-agent job summary and monthly target progress."""
    agent_id: int
    total_assigned: int
    completed: int
    active: int
    cancelled: int
    earnings: float
    monthly_target: int
    completed_this_month: int
    target_progress: float


class CustomerStats(BaseModel):
    """Per-customer shipment summary."""
    customer_id: int
    total: int
    pending: int
    in_transit: int
    delivered: int
    cancelled: int
