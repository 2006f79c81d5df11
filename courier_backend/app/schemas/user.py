"""
User directory Pydantic schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from courier_backend.app.models.enums import UserRole


class UserCreate(BaseModel):
    """Schema for adding a user to the directory (admin only)."""
    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr = Field(..., description="User email address")
    role: UserRole = UserRole.CUSTOMER
    phone: Optional[str] = Field(None, pattern=r"^\d{10}$")


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
