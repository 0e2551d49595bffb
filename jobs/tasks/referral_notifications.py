"""
Referral notification delivery task.

Consumes messages enqueued by NotificationDispatcher. Outbound email is an
external collaborator; the worker resolves the recipient, renders the
message and hands it to the log sink.
"""

from typing import Any

import dramatiq
from loguru import logger

from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401 - registers the default broker
from jobs.utils.database import task_engine, task_session_maker
from upline.repositories.account_repository import AccountRepository
from upline.services.notification_dispatcher import NotificationKind

DELIVERY_TIME_LIMIT = 60_000  # 1 minute

_TEMPLATES = {
    NotificationKind.REFERRAL_BONUS: (
        "You earned ${amount} from your referral program!",
        "Hello {full_name}, a level {level} commission of ${amount} was "
        "added to your referral earnings.",
    ),
    NotificationKind.NEW_REFERRAL: (
        "You have a new referral",
        "Hello {full_name}, {new_account_name} joined using your "
        "referral code.",
    ),
    NotificationKind.WELCOME: (
        "Welcome aboard",
        "Hello {full_name}, your account is ready. A signup bonus of "
        "${signup_bonus} was added to your balance.",
    ),
    NotificationKind.WITHDRAWAL_REQUESTED: (
        "Withdrawal request received",
        "Hello {full_name}, your withdrawal of ${amount} via {method} "
        "is pending review.",
    ),
}


def render_notification(
    kind: str, full_name: str, payload: dict[str, Any]
) -> tuple[str, str]:
    """
    Render subject and body of a notification.

    Args:
        kind: NotificationKind value
        full_name: Recipient display name
        payload: Message data

    Returns:
        Tuple of (subject, body)

    Raises:
        ValueError: Unknown kind or missing payload field
    """
    template = _TEMPLATES.get(kind)
    if template is None:
        raise ValueError(f"Unknown notification kind: {kind}")

    context = {**payload, "full_name": full_name}
    subject, body = template
    try:
        return subject.format(**context), body.format(**context)
    except KeyError as e:
        raise ValueError(f"Missing field {e} for {kind} notification") from e


@dramatiq.actor(max_retries=3, time_limit=DELIVERY_TIME_LIMIT)
def deliver_notification(
    account_id: str, kind: str, payload: dict[str, Any]
) -> None:
    """
    Deliver one notification.

    Args:
        account_id: Recipient account ID
        kind: NotificationKind value
        payload: Message data
    """
    run_async(_deliver_notification_async(account_id, kind, payload))


async def _deliver_notification_async(
    account_id: str,
    kind: str,
    payload: dict[str, Any],
    session_maker=None,
) -> bool:
    """
    Async implementation of notification delivery.

    Args:
        account_id: Recipient account ID
        kind: NotificationKind value
        payload: Message data
        session_maker: Session factory (task sessions by default)

    Returns:
        True if the message was delivered
    """
    maker = session_maker or task_session_maker

    try:
        async with maker() as session:
            account = await AccountRepository(session).get_by_id(account_id)

        if account is None:
            logger.warning(
                "Notification recipient not found",
                extra={"account_id": account_id, "kind": kind},
            )
            return False

        subject, body = render_notification(kind, account.full_name, payload)

        logger.info(
            "Notification delivered to {}: {}",
            account.email,
            subject,
            extra={
                "account_id": account_id,
                "kind": kind,
                "body": body,
            },
        )
        return True
    finally:
        if session_maker is None:
            await task_engine.dispose()
