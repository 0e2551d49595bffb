"""
Notification dispatcher.

Fire-and-forget side channel. Services call notify() only after their
transaction has committed; the message is handed to the task queue and
delivered by a separate worker. A failure to enqueue is logged and never
reaches the caller.
"""

from collections.abc import Callable
from decimal import Decimal
from typing import Any

from loguru import logger

# (account_id, kind, payload) -> None
NotificationSink = Callable[[str, str, dict[str, Any]], None]


class NotificationKind:
    """Notification kinds."""

    REFERRAL_BONUS = "referral_bonus"
    NEW_REFERRAL = "new_referral"
    WELCOME = "welcome"
    WITHDRAWAL_REQUESTED = "withdrawal_requested"


def _queue_sink(account_id: str, kind: str, payload: dict[str, Any]) -> None:
    """Enqueue the notification for the worker."""
    from jobs.tasks.referral_notifications import deliver_notification

    deliver_notification.send(account_id, kind, payload)


def _serializable(payload: dict[str, Any]) -> dict[str, Any]:
    """Convert Decimal values to strings for the message body."""
    return {
        key: str(value) if isinstance(value, Decimal) else value
        for key, value in payload.items()
    }


class NotificationDispatcher:
    """Dispatches notifications to the configured sink."""

    def __init__(self, sink: NotificationSink | None = None) -> None:
        """
        Initialize dispatcher.

        Args:
            sink: Callable receiving (account_id, kind, payload);
                defaults to the dramatiq queue
        """
        self.sink = sink or _queue_sink

    def notify(
        self, account_id: str, kind: str, payload: dict[str, Any]
    ) -> bool:
        """
        Send a notification, swallowing any failure.

        Args:
            account_id: Recipient account ID
            kind: NotificationKind value
            payload: Message data

        Returns:
            True if the sink accepted the message
        """
        try:
            self.sink(account_id, kind, _serializable(payload))
        except Exception as e:
            logger.warning(
                "Failed to dispatch {} notification: {}",
                kind,
                e,
                extra={"account_id": account_id, "kind": kind},
            )
            return False

        logger.debug(
            "Notification dispatched",
            extra={"account_id": account_id, "kind": kind},
        )
        return True


# Shared instance used when services are built without an explicit dispatcher
default_dispatcher = NotificationDispatcher()
