"""
Statistics Service.

Derived, read-only views over the shipments table. Nothing here is
materialized; every call aggregates the current rows. Only the global stats
go through the Redis read cache.
"""

import logging
from typing import Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case

from courier_backend.app.core.config import settings
from courier_backend.app.core.timeutils import utcnow
from courier_backend.app.models.enums import ShipmentStatus
from courier_backend.app.models.proof_of_delivery import ProofOfDelivery
from courier_backend.app.models.shipment import Shipment
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.schemas.stats import ShipmentStats, AgentStats, CustomerStats
from courier_backend.app.services import shipment_store
from courier_backend.app.services.cache import StatsCache, STATS_CACHE_KEY
from courier_backend.app.domain.shipments.status_workflow import ACTIVE_STATUSES, IN_TRANSIT_STATUSES

logger = logging.getLogger(__name__)


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class StatisticsService:

    @staticmethod
    async def compute_stats(db: AsyncSession) -> ShipmentStats:
        """Counts per status and total revenue, straight from the database."""
        rows = (await db.execute(
            select(Shipment.current_status, func.count(Shipment.id)).group_by(Shipment.current_status)
        )).all()

        by_status = {status.value: 0 for status in ShipmentStatus}
        for status, count in rows:
            by_status[ShipmentStatus(status).value] = count

        revenue = (await db.execute(
            select(func.coalesce(func.sum(Shipment.price), 0.0))
        )).scalar() or 0.0

        return ShipmentStats(
            total=sum(by_status.values()),
            by_status=by_status,
            total_revenue=round(float(revenue), 2)
        )

    @staticmethod
    async def get_stats(db: AsyncSession, cache: Optional[StatsCache] = None) -> ShipmentStats:
        """
        Global dashboard stats.

        Served from the cache when present; staleness is bounded by
        settings.stats_cache_ttl_seconds and writers invalidate the key.
        """
        if cache is not None:
            cached = await cache.get(STATS_CACHE_KEY)
            if cached is not None:
                return ShipmentStats.model_validate(cached)

        stats = await StatisticsService.compute_stats(db)

        if cache is not None:
            await cache.set(STATS_CACHE_KEY, stats.model_dump(), settings.stats_cache_ttl_seconds)
        return stats

    @staticmethod
    async def get_agent_stats(db: AsyncSession, agent_id: int) -> AgentStats:
        """Job counts, earnings on delivered jobs and monthly target progress."""
        delivered = Shipment.current_status == ShipmentStatus.DELIVERED
        month_start = _month_start(utcnow())
        # Delivery time is the proof timestamp; plain status changes only have updated_at
        delivered_at = func.coalesce(ProofOfDelivery.timestamp, Shipment.updated_at)

        row = (await db.execute(
            select(
                func.count(Shipment.id),
                _count_where(delivered),
                _count_where(Shipment.current_status.in_(ACTIVE_STATUSES)),
                _count_where(Shipment.current_status == ShipmentStatus.CANCELLED),
                func.coalesce(func.sum(case((delivered, Shipment.price), else_=0.0)), 0.0),
                _count_where(delivered & (delivered_at >= month_start)),
            ).select_from(Shipment).outerjoin(
                ProofOfDelivery, ProofOfDelivery.courier_id == Shipment.id
            ).where(Shipment.assigned_to == agent_id)
        )).one()

        total, completed, active, cancelled, earnings, completed_this_month = row
        target = settings.agent_monthly_target
        progress = min(100.0, completed_this_month * 100.0 / target) if target > 0 else 0.0

        return AgentStats(
            agent_id=agent_id,
            total_assigned=total or 0,
            completed=completed or 0,
            active=active or 0,
            cancelled=cancelled or 0,
            earnings=round(float(earnings or 0.0), 2),
            monthly_target=target,
            completed_this_month=completed_this_month or 0,
            target_progress=round(progress, 1)
        )

    @staticmethod
    async def get_customer_stats(db: AsyncSession, customer: Principal) -> CustomerStats:
        """Summary of the shipments a customer booked or appears on."""
        status = Shipment.current_status

        row = (await db.execute(
            select(
                func.count(Shipment.id),
                _count_where(status == ShipmentStatus.PENDING),
                _count_where(status.in_(IN_TRANSIT_STATUSES)),
                _count_where(status == ShipmentStatus.DELIVERED),
                _count_where(status == ShipmentStatus.CANCELLED),
            ).where(shipment_store.customer_match_condition(customer))
        )).one()

        total, pending, in_transit, delivered, cancelled = row
        return CustomerStats(
            customer_id=customer.id,
            total=total or 0,
            pending=pending or 0,
            in_transit=in_transit or 0,
            delivered=delivered or 0,
            cancelled=cancelled or 0
        )

    @staticmethod
    async def get_recent_shipments(db: AsyncSession, limit: int = 10) -> list[Shipment]:
        limit = max(1, min(limit, settings.audit_feed_limit))
        return await shipment_store.recent_shipments(db, limit)
