"""
Bearer token helpers.

The identity provider signs tokens with the shared secret and carries the
principal in four claims: `user_id`, `role`, `name` and `phone`. The backend
only decodes them. `create_principal_token` mints the same shape for seeding
scripts and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from courier_backend.app.core.config import settings
from courier_backend.app.models.enums import UserRole


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign `data` with an `exp` claim (default lifetime from settings)."""
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = dict(data, exp=datetime.now(timezone.utc) + lifetime)
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def create_principal_token(
    user_id: int,
    role: UserRole,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Token for a directory user, as the identity provider would issue it.

    Example payload:
        {"sub": "42", "user_id": 42, "role": "agent", "name": "Ravi Kumar",
         "phone": "9876543210", "exp": 1234567890}
    """
    return create_access_token({
        "sub": str(user_id),
        "user_id": user_id,
        "role": UserRole(role).value,
        "name": name,
        "phone": phone,
    }, expires_delta)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid, unexpired token; None for anything else."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
