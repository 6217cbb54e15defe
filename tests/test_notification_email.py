"""Receipt emails: SMTP delivery, attachment and background failure handling."""

import smtplib

import pytest

import notification_email
from fee_helpers import add_payment_to_student
from fee_models import LedgerEntry
from receipt_pdf import build_receipt_pdf

STUDENT = {'prn': 'P1', 'name': 'Asha Patil', 'department': 'Computer', 'email': 'asha@example.com'}
ENTRY = {
    'id': 1, 'amount': 50.0, 'reason': 'Late submission', 'type': 'fine', 'category': 'Late Fine',
    'receipt_number': 'RCP-20240305-12345', 'date': '2024-03-05T10:00:00', 'is_paid': True,
    'paid_date': '2024-03-05T10:00:00',
}


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def set_debuglevel(self, level):
        pass

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture
def smtp(monkeypatch):
    monkeypatch.setenv('MAIL_SERVER', 'smtp.example.com')
    monkeypatch.setenv('MAIL_USERNAME', 'accounts@example.com')
    monkeypatch.setenv('MAIL_PASSWORD', 'secret')
    monkeypatch.setenv('MAIL_USE_SSL', 'False')
    FakeSMTP.sent = []
    monkeypatch.setattr(smtplib, 'SMTP', FakeSMTP)
    return FakeSMTP.sent


def test_not_configured(monkeypatch):
    monkeypatch.setenv('MAIL_SERVER', 'localhost')
    monkeypatch.delenv('MAIL_USERNAME', raising=False)
    sent, message = notification_email.send_email(['a@example.com'], 'Hi', '<p>Hi</p>')
    assert sent is False
    assert 'not configured' in message


def test_receipt_email_has_pdf_attachment(smtp):
    sent, _ = notification_email.send_payment_receipt_email(STUDENT, ENTRY)

    assert sent is True
    msg = smtp[0]
    assert msg['To'] == 'asha@example.com'
    assert 'RCP-20240305-12345' in msg['Subject']
    attachments = list(msg.iter_attachments())
    assert attachments[0].get_filename() == 'receipt_RCP-20240305-12345.pdf'
    assert attachments[0].get_content().startswith(b'%PDF')


def test_receipt_without_email_is_skipped(smtp):
    sent, _ = notification_email.send_payment_receipt_email(dict(STUDENT, email=None), ENTRY)
    assert sent is False
    assert smtp == []


def test_smtp_failure_is_reported(smtp, monkeypatch):
    def refuse(*args, **kwargs):
        raise smtplib.SMTPConnectError(421, 'busy')

    monkeypatch.setattr(smtplib, 'SMTP', refuse)
    sent, message = notification_email.send_payment_receipt_email(STUDENT, ENTRY)
    assert sent is False
    assert 'smtp.example.com' in message


def test_background_failure_keeps_entry(session, make_student, monkeypatch, caplog):
    threads = []
    real_async = notification_email.send_payment_receipt_email_async

    def boom(student, entry):
        raise RuntimeError('mail server exploded')

    def record_thread(student, entry):
        threads.append(real_async(student, entry))
        return threads[-1]

    monkeypatch.setattr(notification_email, 'send_payment_receipt_email', boom)
    monkeypatch.setattr(notification_email, 'send_payment_receipt_email_async', record_thread)
    make_student('P1', email='asha@example.com')

    entry = add_payment_to_student(session, 'P1', 50)
    threads[0].join(timeout=5)

    assert session.query(LedgerEntry).filter_by(id=entry.id).count() == 1
    assert 'mail server exploded' in caplog.text


def test_receipt_pdf_renders_without_optional_fields():
    pdf = build_receipt_pdf({'prn': 'P1', 'name': 'Asha'}, dict(ENTRY, reason='', category=None))
    assert pdf.startswith(b'%PDF')
