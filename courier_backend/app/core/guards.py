"""
Security guards for role-based access control on endpoints.

Shipment-level rules live in the access policy; these guards cover whole
endpoints (directories, dashboards) that only certain roles may reach.
"""

from typing import List
from fastapi import Depends
from courier_backend.app.core.dependencies import get_current_principal
from courier_backend.app.core.exceptions import AuthorizationError
from courier_backend.app.models.enums import UserRole
from courier_backend.app.schemas.auth import Principal


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/blobs")
        async def upload(principal: Principal = Depends(require_role([UserRole.ADMIN, UserRole.AGENT]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates the principal's role

    Raises:
        AuthorizationError if the role is not in allowed_roles
    """
    async def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed_roles:
            raise AuthorizationError(
                message=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )
        return principal

    return role_checker


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """
    Dependency for admin-only endpoints.

    Returns:
        Principal if admin, raises 403 otherwise
    """
    if principal.role != UserRole.ADMIN:
        raise AuthorizationError(message="Admin access required")
    return principal


def verify_self_or_admin(subject_id: int, principal: Principal) -> None:
    """
    Allow admins, or the principal acting on their own record.

    Usage:
        verify_self_or_admin(agent_id, principal)
    """
    if principal.role == UserRole.ADMIN or principal.id == subject_id:
        return
    raise AuthorizationError(message="Access denied. You can only view your own records.")
