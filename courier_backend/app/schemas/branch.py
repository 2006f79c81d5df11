"""
Branch Pydantic schemas.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from typing import Optional, List


class BranchCreate(BaseModel):
    """Schema for creating a branch."""
    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1, max_length=500)
    phone: Optional[str] = Field(None, max_length=20)
    manager_id: Optional[int] = None

    @field_validator("name", "address")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("field is required")
        return value


class BranchUpdate(BaseModel):
    """Schema for updating a branch; only provided fields change."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    phone: Optional[str] = Field(None, max_length=20)
    manager_id: Optional[int] = None

    model_config = {"extra": "forbid"}

    @field_validator("name", "address")
    @classmethod
    def not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("field cannot be empty")
        return value

    @model_validator(mode="after")
    def required_fields_not_cleared(self):
        for name in ("name", "address"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self


class BranchResponse(BaseModel):
    id: int
    name: str
    address: str
    phone: Optional[str] = None
    manager_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BranchListResponse(BaseModel):
    branches: List[BranchResponse]
    total: int
