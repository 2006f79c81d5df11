"""
Notification Service.

Fire-and-forget delivery of shipment events to a notification sink
(SMS / EMAIL). Real gateways are out of scope; the default sink writes
mock deliveries to the log. Dispatch never raises: a failed or open-circuit
send is logged and dropped, so it cannot undo the shipment change that
triggered it.
"""

import enum
import logging
from typing import Optional, Protocol

from courier_backend.app.core.config import settings
from courier_backend.app.core.reliability import CircuitBreaker, CircuitOpenError
from courier_backend.app.models.enums import ShipmentStatus

logger = logging.getLogger(__name__)

SENDER_EMAIL_PLACEHOLDER = "sender@example.com"


class NotificationChannel(str, enum.Enum):
    SMS = "SMS"
    EMAIL = "EMAIL"
    IN_APP = "IN_APP"


class NotificationSink(Protocol):
    async def send(self, channel: NotificationChannel, recipient: str, message: str) -> None:
        ...


class LoggingNotificationSink:
    """Mock gateway: records each message in the log."""

    async def send(self, channel: NotificationChannel, recipient: str, message: str) -> None:
        logger.info("[MOCK %s] To: %s | Msg: %s", channel.value, recipient, message)


class NotificationDispatcher:
    """
    Sends notifications through a sink guarded by a circuit breaker.

    Usage:
        dispatcher = NotificationDispatcher(LoggingNotificationSink())
        await dispatcher.notify_status_change(shipment)
    """

    def __init__(self, sink: NotificationSink, breaker: Optional[CircuitBreaker] = None):
        self.sink = sink
        self.breaker = breaker or CircuitBreaker(failure_threshold=5, reset_timeout=30)

    async def dispatch(self, channel: NotificationChannel, recipient: Optional[str], message: str) -> bool:
        """
        Send one notification.

        Returns:
            True if the sink accepted it, False if it was skipped or failed
        """
        if not settings.notifications_enabled or not recipient:
            return False
        try:
            await self.breaker.call(self.sink.send, channel, recipient, message)
        except CircuitOpenError:
            logger.warning("Notification sink circuit open, dropping %s to %s", channel.value, recipient)
            return False
        except Exception:
            logger.warning("Notification to %s via %s failed", recipient, channel.value, exc_info=True)
            return False
        return True

    async def notify_created(self, shipment) -> None:
        await self.dispatch(
            NotificationChannel.SMS,
            shipment.receiver_phone,
            f"Hello! A courier {shipment.tracking_id} from {shipment.sender_name} has been booked for you. "
            f"Track it in the CMS app."
        )

    async def notify_status_change(self, shipment) -> None:
        status_text = _status_text(shipment.current_status)
        await self.dispatch(
            NotificationChannel.SMS,
            shipment.receiver_phone,
            f"Hello! Your courier {shipment.tracking_id} from {shipment.sender_name} is now {status_text}. "
            f"Track it in the CMS app."
        )
        await self.dispatch(
            NotificationChannel.EMAIL,
            SENDER_EMAIL_PLACEHOLDER,
            f"Update: Your parcel {shipment.tracking_id} status has been updated to {status_text}."
        )

    async def notify_assigned(self, shipment, agent) -> None:
        recipient = agent.phone or agent.email
        channel = NotificationChannel.SMS if agent.phone else NotificationChannel.EMAIL
        await self.dispatch(
            channel,
            recipient,
            f"New job: courier {shipment.tracking_id} from {shipment.pickup_address} "
            f"to {shipment.delivery_address} has been assigned to you."
        )


def _status_text(status: ShipmentStatus) -> str:
    return status.value.replace("_", " ").upper()


default_dispatcher = NotificationDispatcher(LoggingNotificationSink())


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency for the notification dispatcher."""
    return default_dispatcher
