"""
Statistics API Endpoints.

Dashboard views for admins, agents and customers.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.db.session import get_db
from courier_backend.app.core.dependencies import get_current_principal, get_stats_cache
from courier_backend.app.core.exceptions import NotFoundError
from courier_backend.app.core.guards import require_admin, verify_self_or_admin
from courier_backend.app.models.enums import UserRole
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.schemas.stats import ShipmentStats, AgentStats, CustomerStats
from courier_backend.app.services import directory
from courier_backend.app.services.cache import StatsCache
from courier_backend.app.services.statistics import StatisticsService

router = APIRouter(prefix="/stats", tags=["Statistics"])


@router.get("", response_model=ShipmentStats)
async def get_stats(
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache)
):
    """Counts per status and total revenue (admin only, cached briefly)."""
    return await StatisticsService.get_stats(db, cache)


@router.get("/agents/{agent_id}", response_model=AgentStats)
async def get_agent_stats(
    agent_id: int = Path(..., description="Agent user ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Job summary for an agent (admins, or the agent themself)."""
    verify_self_or_admin(agent_id, principal)
    await directory.get_agent(db, agent_id)
    return await StatisticsService.get_agent_stats(db, agent_id)


@router.get("/customers/{customer_id}", response_model=CustomerStats)
async def get_customer_stats(
    customer_id: int = Path(..., description="Customer user ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Shipment summary for a customer (admins, or the customer themself)."""
    verify_self_or_admin(customer_id, principal)

    if principal.id == customer_id and principal.role == UserRole.CUSTOMER:
        customer = principal
    else:
        user = await directory.get_user(db, customer_id)
        if not user or user.role != UserRole.CUSTOMER:
            raise NotFoundError("Customer", customer_id)
        customer = Principal(id=user.id, role=user.role, name=user.name, phone=user.phone)

    return await StatisticsService.get_customer_stats(db, customer)
