"""
Shipment database model.

The central "courier" record: parties, routing, workflow status, billing
inputs and the pointers to its proof of delivery and current invoice.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, Text
from courier_backend.app.db.session import Base
from courier_backend.app.models.enums import (
    ShipmentStatus, PaymentStatus, PaymentMethod, DeliveryType
)


class Shipment(Base):
    """
    Shipment model.

    `current_status`, `assigned_to`, `pod_id` and `invoice_id` are only
    written by the lifecycle service. Timestamps are assigned by the service
    so that `updated_at` advances on every mutation.
    """
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tracking_id = Column(String(40), unique=True, nullable=False, index=True)

    # Parties
    sender_name = Column(String(150), nullable=False)
    sender_phone = Column(String(20), nullable=True)
    receiver_name = Column(String(150), nullable=False)
    receiver_phone = Column(String(20), nullable=False, index=True)

    # Routing
    pickup_address = Column(String(500), nullable=False)
    delivery_address = Column(String(500), nullable=False)
    branch_id = Column(Integer, ForeignKey('branches.id', ondelete="SET NULL"), nullable=True, index=True)

    # Workflow
    current_status = Column(Enum(ShipmentStatus), default=ShipmentStatus.PENDING, nullable=False, index=True)
    assigned_to = Column(Integer, ForeignKey('users.id', ondelete="SET NULL"), nullable=True, index=True)

    # Billing
    weight = Column(Float, nullable=True)  # kg
    distance = Column(Float, nullable=True)  # km
    price = Column(Float, nullable=True)
    payment_status = Column(Enum(PaymentStatus), nullable=True)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    delivery_type = Column(Enum(DeliveryType), default=DeliveryType.NORMAL, nullable=True)

    # Proof of delivery / invoice pointers
    pod_id = Column(Integer, nullable=True)
    invoice_id = Column(Integer, nullable=True)

    # Metadata
    notes = Column(Text, nullable=True)
    expected_delivery_date = Column(String(40), nullable=True)
    booked_by = Column(Integer, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<Shipment(id={self.id}, tracking_id='{self.tracking_id}', status='{self.current_status.value}')>"
