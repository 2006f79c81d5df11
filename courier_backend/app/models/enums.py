"""
Enumerations shared by the courier models.

Defines roles, shipment statuses and billing choices.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Manages branches, agents and every shipment
        AGENT: Executes deliveries assigned to them
        CUSTOMER: Books shipments and follows their own parcels
    """
    ADMIN = "admin"
    AGENT = "agent"
    CUSTOMER = "customer"


class ShipmentStatus(str, enum.Enum):
    """
    Shipment status enumeration, in workflow order.

    Status flow:
        PENDING → PICKED_UP → IN_TRANSIT → OUT_FOR_DELIVERY → DELIVERED
        Any non-terminal status can transition to CANCELLED
    """
    PENDING = "pending"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self in (ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED)


STATUS_LABELS = {
    ShipmentStatus.PENDING: "Pending",
    ShipmentStatus.PICKED_UP: "Picked Up",
    ShipmentStatus.IN_TRANSIT: "In Transit",
    ShipmentStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    ShipmentStatus.DELIVERED: "Delivered",
    ShipmentStatus.CANCELLED: "Cancelled",
}


class PaymentStatus(str, enum.Enum):
    PAID = "paid"
    UNPAID = "unpaid"
    PENDING = "pending"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    PREPAID = "prepaid"


class DeliveryType(str, enum.Enum):
    """Delivery speed; express applies the price multiplier."""
    NORMAL = "normal"
    EXPRESS = "express"


class InvoiceStatus(str, enum.Enum):
    PAID = "paid"
    UNPAID = "unpaid"
    VOID = "void"
