"""
Shipment status workflow.

Canonical order: pending → picked_up → in_transit → out_for_delivery → delivered,
with cancelled reachable from any non-terminal status. When enforcement is on
(the default) a status may only move forward; skipping ahead is allowed,
going back or leaving a terminal status is not. With enforcement off any
enumerated status may follow any other.
"""

from typing import Optional
from courier_backend.app.core.config import settings
from courier_backend.app.core.exceptions import InvalidTransitionError
from courier_backend.app.models.enums import ShipmentStatus

STATUS_ORDER = [
    ShipmentStatus.PENDING,
    ShipmentStatus.PICKED_UP,
    ShipmentStatus.IN_TRANSIT,
    ShipmentStatus.OUT_FOR_DELIVERY,
    ShipmentStatus.DELIVERED,
]

INITIAL_STATUS = ShipmentStatus.PENDING

IN_TRANSIT_STATUSES = (
    ShipmentStatus.PICKED_UP,
    ShipmentStatus.IN_TRANSIT,
    ShipmentStatus.OUT_FOR_DELIVERY,
)

ACTIVE_STATUSES = (ShipmentStatus.PENDING,) + IN_TRANSIT_STATUSES


def is_allowed_transition(current: ShipmentStatus, new: ShipmentStatus) -> bool:
    """Strict edge check, independent of the enforcement setting."""
    if current.is_terminal or current == new:
        return False
    if new == ShipmentStatus.CANCELLED:
        return True
    return STATUS_ORDER.index(new) > STATUS_ORDER.index(current)


def allowed_next_statuses(current: ShipmentStatus) -> list[ShipmentStatus]:
    return [status for status in ShipmentStatus if is_allowed_transition(current, status)]


def validate_transition(
    current: ShipmentStatus,
    new: ShipmentStatus,
    enforce: Optional[bool] = None
) -> None:
    """
    Raise InvalidTransitionError if `current -> new` is not permitted.

    Args:
        current: Status the shipment is in
        new: Requested status
        enforce: Override for settings.enforce_status_transitions
    """
    if enforce is None:
        enforce = settings.enforce_status_transitions
    if not enforce:
        return
    if not is_allowed_transition(current, new):
        raise InvalidTransitionError(current.value, new.value)


def format_status_change(old: ShipmentStatus, new: ShipmentStatus) -> str:
    return f"{old.label} → {new.label}"
