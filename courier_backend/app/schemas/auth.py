"""
Principal schema.

The acting identity supplied by the external identity provider. Every
lifecycle operation receives one explicitly.
"""

from pydantic import BaseModel, Field
from typing import Optional
from courier_backend.app.models.enums import UserRole


class Principal(BaseModel):
    """
    Authenticated actor invoking an operation.

    Built from the bearer token claims (`user_id`, `role`, `name`, `phone`).
    """
    id: int = Field(..., description="User ID at the identity provider")
    role: UserRole
    name: Optional[str] = None
    phone: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_agent(self) -> bool:
        return self.role == UserRole.AGENT

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER
