"""
Access policy for shipment operations.

Role rules:
    admin     every operation on every shipment
    agent     read / change status / complete delivery on shipments assigned to them
    customer  create; read shipments they booked or appear on as sender/receiver

`can_perform` is pure; `enforce` raises AuthorizationError and is called by the
lifecycle service before any write.
"""

import enum
from typing import Optional
from courier_backend.app.core.exceptions import AuthorizationError
from courier_backend.app.models.enums import UserRole
from courier_backend.app.schemas.auth import Principal


class ShipmentOperation(str, enum.Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    CHANGE_STATUS = "change_status"
    ASSIGN = "assign"
    COMPLETE_DELIVERY = "complete_delivery"
    GENERATE_INVOICE = "generate_invoice"
    DELETE = "delete"


AGENT_OPERATIONS = {
    ShipmentOperation.READ,
    ShipmentOperation.CHANGE_STATUS,
    ShipmentOperation.COMPLETE_DELIVERY,
}


def _normalize_name(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.strip().lower() or None


def is_customer_party(principal: Principal, shipment) -> bool:
    """
    Whether a customer is linked to a shipment.

    Booking is the durable link. Phone and name equality against the
    sender/receiver fields is the looser match the booking screens rely on.
    """
    if shipment.booked_by is not None and shipment.booked_by == principal.id:
        return True

    if principal.phone and principal.phone in (shipment.sender_phone, shipment.receiver_phone):
        return True

    name = _normalize_name(principal.name)
    if name and name in (_normalize_name(shipment.sender_name), _normalize_name(shipment.receiver_name)):
        return True

    return False


def can_perform(principal: Principal, operation: ShipmentOperation, shipment=None) -> bool:
    """
    Decide whether `principal` may invoke `operation` on `shipment`.

    Args:
        principal: Acting user
        operation: Requested shipment operation
        shipment: Target shipment (None for CREATE)

    Returns:
        True if allowed
    """
    if principal.role == UserRole.ADMIN:
        return True

    if principal.role == UserRole.AGENT:
        if operation not in AGENT_OPERATIONS or shipment is None:
            return False
        return shipment.assigned_to is not None and shipment.assigned_to == principal.id

    if principal.role == UserRole.CUSTOMER:
        if operation == ShipmentOperation.CREATE:
            return True
        if operation == ShipmentOperation.READ and shipment is not None:
            return is_customer_party(principal, shipment)
        return False

    return False


def enforce(principal: Principal, operation: ShipmentOperation, shipment=None) -> None:
    """Raise AuthorizationError unless the operation is allowed."""
    if can_perform(principal, operation, shipment):
        return

    details = {"operation": operation.value, "role": principal.role.value}
    if shipment is not None:
        details["tracking_id"] = shipment.tracking_id
        message = f"Access denied. You do not have permission to {operation.value.replace('_', ' ')} shipment {shipment.tracking_id}."
    else:
        message = f"Access denied. Role '{principal.role.value}' cannot {operation.value.replace('_', ' ')} shipments."
    raise AuthorizationError(message=message, details=details)
