"""
Shipment Pydantic schemas.

Defines request, patch and response models for the shipment lifecycle.
Create and patch share the same field rules so both paths enforce identical
bounds.
"""

import re
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from typing import Optional, List
from courier_backend.app.core.config import settings
from courier_backend.app.core.timeutils import as_utc
from courier_backend.app.models.enums import (
    ShipmentStatus, PaymentStatus, PaymentMethod, DeliveryType
)

PHONE_PATTERN = re.compile(r"^\d{10}$")

REQUIRED_TEXT_FIELDS = (
    "sender_name", "receiver_name", "receiver_phone", "pickup_address", "delivery_address"
)


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not PHONE_PATTERN.match(value):
        raise ValueError("phone number must be exactly 10 digits")
    return value


def _check_weight(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    if value <= 0 or value > settings.max_weight_kg:
        raise ValueError(f"weight must be greater than 0 and at most {settings.max_weight_kg:g} kg")
    return value


def _check_distance(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    if value <= 0 or value > settings.max_distance_km:
        raise ValueError(f"distance must be greater than 0 and at most {settings.max_distance_km:g} km")
    return value


class ShipmentCreate(BaseModel):
    """Schema for booking a new shipment."""
    sender_name: str = Field(..., max_length=150)
    sender_phone: Optional[str] = None
    receiver_name: str = Field(..., max_length=150)
    receiver_phone: str
    pickup_address: str = Field(..., max_length=500)
    delivery_address: str = Field(..., max_length=500)
    branch_id: Optional[int] = None

    weight: Optional[float] = Field(None, description="Weight in kilograms")
    distance: Optional[float] = Field(None, description="Distance in kilometres")
    delivery_type: DeliveryType = DeliveryType.NORMAL
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_method: Optional[PaymentMethod] = None

    notes: Optional[str] = None
    expected_delivery_date: Optional[str] = Field(None, max_length=40)

    model_config = {"extra": "forbid"}

    @field_validator(*REQUIRED_TEXT_FIELDS, mode="before")
    @classmethod
    def required_text(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("field is required")
        return value.strip() if isinstance(value, str) else value

    @field_validator("sender_phone", "notes", "expected_delivery_date", mode="before")
    @classmethod
    def optional_text(cls, value):
        return _clean_text(value) if isinstance(value, str) else value

    @field_validator("receiver_phone", "sender_phone")
    @classmethod
    def phone_format(cls, value):
        return _check_phone(value)

    @field_validator("weight")
    @classmethod
    def weight_bounds(cls, value):
        return _check_weight(value)

    @field_validator("distance")
    @classmethod
    def distance_bounds(cls, value):
        return _check_distance(value)


class ShipmentUpdate(BaseModel):
    """
    Patch for an existing shipment.

    Only fields present in the request are applied. Status, assignment,
    price, proof and invoice pointers are not settable here.
    """
    sender_name: Optional[str] = Field(None, max_length=150)
    sender_phone: Optional[str] = None
    receiver_name: Optional[str] = Field(None, max_length=150)
    receiver_phone: Optional[str] = None
    pickup_address: Optional[str] = Field(None, max_length=500)
    delivery_address: Optional[str] = Field(None, max_length=500)
    branch_id: Optional[int] = None

    weight: Optional[float] = None
    distance: Optional[float] = None
    delivery_type: Optional[DeliveryType] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None

    notes: Optional[str] = None
    expected_delivery_date: Optional[str] = Field(None, max_length=40)

    model_config = {"extra": "forbid"}

    @field_validator(*REQUIRED_TEXT_FIELDS, mode="before")
    @classmethod
    def required_text(cls, value):
        # None is rejected later: required fields cannot be cleared
        if isinstance(value, str):
            if not value.strip():
                raise ValueError("field cannot be empty")
            return value.strip()
        return value

    @field_validator("sender_phone", "notes", "expected_delivery_date", mode="before")
    @classmethod
    def optional_text(cls, value):
        return _clean_text(value) if isinstance(value, str) else value

    @field_validator("receiver_phone", "sender_phone")
    @classmethod
    def phone_format(cls, value):
        return _check_phone(value)

    @field_validator("weight")
    @classmethod
    def weight_bounds(cls, value):
        return _check_weight(value)

    @field_validator("distance")
    @classmethod
    def distance_bounds(cls, value):
        return _check_distance(value)

    @model_validator(mode="after")
    def required_fields_not_cleared(self):
        for name in REQUIRED_TEXT_FIELDS + ("delivery_type",):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        if not self.model_fields_set:
            raise ValueError("at least one field must be provided")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class StatusChangeRequest(BaseModel):
    status: ShipmentStatus


class AssignAgentRequest(BaseModel):
    agent_id: int = Field(..., gt=0)


class GeoLocation(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class CompleteDeliveryRequest(BaseModel):
    """Proof of delivery captured by the agent at the door."""
    signee_name: str = Field(..., max_length=150)
    signature_ref: str = Field(..., max_length=255)
    photo_ref: Optional[str] = Field(None, max_length=255)
    location: Optional[GeoLocation] = None

    @field_validator("signee_name")
    @classmethod
    def signee_length(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("signee name must be at least 3 characters")
        return value

    @field_validator("signature_ref")
    @classmethod
    def signature_present(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("signature is required")
        return value

    @field_validator("photo_ref", mode="before")
    @classmethod
    def optional_photo(cls, value):
        return _clean_text(value) if isinstance(value, str) else value


class ShipmentFilter(BaseModel):
    """Store-level filter; all fields optional and combined with AND."""
    status: Optional[ShipmentStatus] = None
    assigned_to: Optional[int] = None
    branch_id: Optional[int] = None
    payment_status: Optional[PaymentStatus] = None
    booked_by: Optional[int] = None


class ShipmentResponse(BaseModel):
    """Schema for shipment response."""
    id: int
    tracking_id: str
    sender_name: str
    sender_phone: Optional[str] = None
    receiver_name: str
    receiver_phone: str
    pickup_address: str
    delivery_address: str
    branch_id: Optional[int] = None
    current_status: ShipmentStatus
    assigned_to: Optional[int] = None
    weight: Optional[float] = None
    distance: Optional[float] = None
    price: Optional[float] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
    delivery_type: Optional[DeliveryType] = None
    pod_id: Optional[int] = None
    invoice_id: Optional[int] = None
    notes: Optional[str] = None
    expected_delivery_date: Optional[str] = None
    booked_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_validator("created_at", "updated_at")
    @classmethod
    def in_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class ShipmentListResponse(BaseModel):
    """Schema for paginated shipment list."""
    shipments: List[ShipmentResponse]
    total: int
    page: int
    page_size: int


class ProofOfDeliveryResponse(BaseModel):
    id: int
    courier_id: int
    signee_name: str
    signature_id: Optional[str] = None
    photo_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timestamp: datetime

    class Config:
        from_attributes = True
