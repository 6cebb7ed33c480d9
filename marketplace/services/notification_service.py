"""
Notification delivery for order events.
Uses Flask-Mail for supplier/buyer emails; the log sink is the default.
"""
import logging
from typing import Any, Dict

from flask import current_app
from flask_mail import Mail, Message

from marketplace.models import Supplier
from marketplace.services.ports import NotificationSink

logger = logging.getLogger(__name__)

mail = Mail()


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """
    Check if mail is properly configured and enabled.
    Prevents errors in dev or misconfigured environments.
    """
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
        and cfg.get("MAIL_USERNAME")
    )


def describe_event(event: Dict[str, Any]) -> str:
    """Human readable line for an order event."""
    if event.get('message'):
        return event['message']
    if event.get('type') == 'order_created':
        return (
            f"New order {event.get('order_number')} received "
            f"for {event.get('total_amount')} ({event.get('item_count')} item(s))"
        )
    return f"Order event {event.get('type')} for {event.get('order_number')}"


class LogNotificationSink(NotificationSink):
    """Writes events to the application log."""

    def notify(self, recipient_id: str, event: Dict[str, Any]) -> None:
        logger.info(f"[NOTIFY] {recipient_id}: {describe_event(event)}")


class MailNotificationSink(NotificationSink):
    """
    Emails order events to suppliers.

    The recipient's address comes from the Supplier table; recipients with no
    address on file (buyers, the platform store) are logged instead.
    """

    def __init__(self, session):
        self.session = session

    def notify(self, recipient_id: str, event: Dict[str, Any]) -> None:
        supplier = self.session.query(Supplier).filter(Supplier.id == recipient_id).first()
        if not supplier or not supplier.email:
            logger.info(f"[NOTIFY] No email on file for {recipient_id}: {describe_event(event)}")
            return

        if not _mail_enabled():
            logger.warning(f"[MAIL DISABLED] Notification skipped for {supplier.email}")
            return

        subject = f"Order {event.get('order_number')} - {event.get('type', 'update').replace('_', ' ')}"
        msg = Message(
            subject=subject,
            recipients=[supplier.email],
            body=f"Hello {supplier.name},\n\n{describe_event(event)}\n",
        )
        mail.send(msg)
        logger.info(f"[NOTIFY] ✓ {event.get('type')} email sent to {supplier.email}")


def get_notifier(session) -> NotificationSink:
    """Notification sink selected by NOTIFICATION_BACKEND."""
    backend = current_app.config.get('NOTIFICATION_BACKEND', 'log')
    if backend == 'mail':
        return MailNotificationSink(session)
    return LogNotificationSink()
