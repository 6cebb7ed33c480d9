"""
Integration tests for notification sinks.
"""

import logging

import pytest

from marketplace.services.notification_service import (
    LogNotificationSink, MailNotificationSink, describe_event, get_notifier, mail
)

EVENT = {
    'type': 'order_created',
    'order_number': 'ORD-20240510-ABC',
    'total_amount': '45.00',
    'item_count': 2,
}


@pytest.fixture
def mail_enabled(app, monkeypatch):
    monkeypatch.setitem(app.config, 'MAIL_SUPPRESS_SEND', False)
    monkeypatch.setitem(app.config, 'MAIL_USERNAME', 'orders@marketplace.test')


class TestNotificationSinks:
    """Tests for the log and mail sinks."""

    def test_test_config_uses_log_sink(self, session):
        assert isinstance(get_notifier(session), LogNotificationSink)

    def test_mail_backend_is_selectable(self, app, session, monkeypatch):
        monkeypatch.setitem(app.config, 'NOTIFICATION_BACKEND', 'mail')
        assert isinstance(get_notifier(session), MailNotificationSink)

    def test_describe_event(self):
        assert describe_event(EVENT) == 'New order ORD-20240510-ABC received for 45.00 (2 item(s))'
        assert describe_event({'message': 'Shipped'}) == 'Shipped'

    def test_log_sink(self, caplog):
        with caplog.at_level(logging.INFO):
            LogNotificationSink().notify('sup-x', EVENT)
        assert 'sup-x' in caplog.text

    def test_mail_sink_emails_the_supplier(self, session, suppliers, mail_enabled):
        with mail.record_messages() as outbox:
            MailNotificationSink(session).notify('sup-x', EVENT)

        assert len(outbox) == 1
        assert outbox[0].recipients == ['orders@xiamen.test']
        assert 'ORD-20240510-ABC' in outbox[0].subject
        assert 'Xiamen Tools' in outbox[0].body

    def test_supplier_without_email_is_logged(self, session, suppliers, mail_enabled, caplog):
        with mail.record_messages() as outbox, caplog.at_level(logging.INFO):
            MailNotificationSink(session).notify('sup-z', EVENT)

        assert outbox == []
        assert 'No email on file for sup-z' in caplog.text

    def test_suppressed_mail_sends_nothing(self, session, suppliers):
        with mail.record_messages() as outbox:
            MailNotificationSink(session).notify('sup-y', EVENT)
        assert outbox == []
