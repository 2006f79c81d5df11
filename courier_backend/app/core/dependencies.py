"""
Request dependencies for FastAPI.

Turns the identity provider's bearer token into an explicit Principal and
wires the lifecycle service with its collaborators.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from courier_backend.app.core.exceptions import AuthenticationError
from courier_backend.app.core.jwt import decode_access_token
from courier_backend.app.core.redis_client import get_redis
from courier_backend.app.db.session import get_db
from courier_backend.app.domain.shipments.lifecycle_service import ShipmentLifecycleService
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.services.cache import StatsCache
from courier_backend.app.services.notification_service import (
    NotificationDispatcher, get_notification_dispatcher
)

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Principal:
    """
    FastAPI dependency resolving the acting principal.

    Credentials are not verified here beyond the token signature; the identity
    provider is the authority for who the caller is.

    Raises:
        AuthenticationError: token missing, invalid, expired or without a usable role
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    try:
        return Principal(
            id=user_id,
            role=payload.get("role"),
            name=payload.get("name"),
            phone=payload.get("phone"),
        )
    except PydanticValidationError:
        raise AuthenticationError("Invalid role in token")


async def get_stats_cache(redis=Depends(get_redis)) -> StatsCache:
    return StatsCache(redis)


async def get_lifecycle_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
    cache: StatsCache = Depends(get_stats_cache)
) -> ShipmentLifecycleService:
    return ShipmentLifecycleService(db, notifier=notifier, cache=cache)
