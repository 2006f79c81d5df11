"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from courier_backend.app.api.v1.endpoints import (
    shipments, logs, stats, branches, users, blobs
)

router = APIRouter()

# Shipment lifecycle and queries
router.include_router(shipments.router)

# Audit feed and dashboards
router.include_router(logs.router)
router.include_router(stats.router)

# Directories
router.include_router(branches.router)
router.include_router(users.router)

# Proof-of-delivery uploads
router.include_router(blobs.router)
