"""
Notification Email Helper
Sends payment receipt emails to students via SMTP.

Configuration via environment variables:
- MAIL_SERVER: SMTP host (e.g., mail.yourdomain.com)
- MAIL_PORT: SMTP port (default: 587 for TLS)
- MAIL_USERNAME: SMTP username (e.g., accounts@yourdomain.com)
- MAIL_PASSWORD: SMTP password
- MAIL_USE_TLS: Use STARTTLS (default: True)
- MAIL_USE_SSL: Use SSL (default: False, use for port 465)
- MAIL_SENDER_NAME: Display name for sender (default: Department Finance Office)
- MAIL_DEBUG: Enable SMTP debug output (default: False)
"""

import os
import smtplib
import socket
import logging
from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid
from typing import List, Tuple, Optional
from threading import Thread
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()

# Callers (e.g. app entry) configure logging handlers. Keep a module logger only.
logger = logging.getLogger(__name__)


def get_smtp_config():
    """Get SMTP configuration from environment (reload each time for testing)."""
    return {
        'host': os.getenv('MAIL_SERVER', 'localhost'),
        'port': int(os.getenv('MAIL_PORT', 587)),
        'user': os.getenv('MAIL_USERNAME', ''),
        'password': os.getenv('MAIL_PASSWORD', ''),
        'use_tls': os.getenv('MAIL_USE_TLS', 'True').lower() in ('true', '1', 'yes'),
        'use_ssl': os.getenv('MAIL_USE_SSL', 'False').lower() in ('true', '1', 'yes'),
        'sender_name': os.getenv('MAIL_SENDER_NAME', 'Department Finance Office'),
        'debug': os.getenv('MAIL_DEBUG', 'False').lower() in ('true', '1', 'yes'),
    }


def is_email_configured() -> bool:
    """Check if email sending is properly configured."""
    cfg = get_smtp_config()
    return bool(cfg['host'] and cfg['host'] != 'localhost' and cfg['user'] and cfg['password'])


def send_email(
    to_addrs: List[str],
    subject: str,
    html_body: str,
    plain_body: Optional[str] = None,
    attachments: Optional[List[Tuple[str, bytes, str]]] = None,
    reply_to: Optional[str] = None
) -> Tuple[bool, str]:
    """
    Send an email to one or more recipients.

    Args:
        to_addrs: List of recipient email addresses
        subject: Email subject
        html_body: HTML content of the email
        plain_body: Plain text fallback (optional)
        attachments: List of tuples (filename, content bytes, mimetype)
        reply_to: Reply-to address (optional)

    Returns:
        Tuple of (success: bool, message: str)
    """
    cfg = get_smtp_config()
    start_time = datetime.now()

    if not is_email_configured():
        msg = "Email not configured. Set MAIL_SERVER, MAIL_USERNAME, MAIL_PASSWORD environment variables."
        logger.warning(f"[EMAIL] Not sending '{subject[:80]}': {msg}")
        return False, msg

    # Filter out empty/None addresses
    to_addrs = [addr for addr in (to_addrs or []) if addr and '@' in addr]
    if not to_addrs:
        msg = "No valid email addresses provided"
        logger.warning(f"[EMAIL] Not sending '{subject[:80]}': {msg}")
        return False, msg

    try:
        msg = EmailMessage()
        msg['Subject'] = subject
        msg['From'] = formataddr((cfg['sender_name'], cfg['user']))
        msg['To'] = ', '.join(to_addrs)
        msg['Message-ID'] = make_msgid()
        msg['Date'] = formatdate(localtime=True)
        msg['Reply-To'] = reply_to or cfg['user']

        msg.set_content(plain_body or 'Please view this email in an HTML-compatible email client.')
        msg.add_alternative(html_body, subtype='html')

        for filename, data, mimetype in attachments or []:
            if mimetype and '/' in mimetype:
                maintype, subtype = mimetype.split('/', 1)
            else:
                maintype, subtype = 'application', 'octet-stream'
            msg.add_attachment(data, maintype=maintype, subtype=subtype, filename=filename)

        logger.debug(f"[EMAIL] Connecting to SMTP: {cfg['host']}:{cfg['port']} (TLS={cfg['use_tls']}, SSL={cfg['use_ssl']})")

        if cfg['use_ssl']:
            with smtplib.SMTP_SSL(cfg['host'], cfg['port'], timeout=30) as server:
                if cfg['debug']:
                    server.set_debuglevel(2)
                server.login(cfg['user'], cfg['password'])
                server.send_message(msg)
        else:
            with smtplib.SMTP(cfg['host'], cfg['port'], timeout=30) as server:
                if cfg['debug']:
                    server.set_debuglevel(2)
                if cfg['use_tls']:
                    server.starttls()
                server.login(cfg['user'], cfg['password'])
                server.send_message(msg)

        elapsed = (datetime.now() - start_time).total_seconds()
        success_msg = f"Email sent to {len(to_addrs)} recipient(s) in {elapsed:.2f}s"
        logger.info(f"[EMAIL] {success_msg}")
        return True, success_msg

    except smtplib.SMTPAuthenticationError as e:
        error_msg = f"SMTP authentication failed: {str(e)}"
    except smtplib.SMTPConnectError as e:
        error_msg = f"Could not connect to SMTP server {cfg['host']}:{cfg['port']}: {str(e)}"
    except smtplib.SMTPException as e:
        error_msg = f"SMTP error: {str(e)}"
    except socket.timeout as e:
        error_msg = f"Connection timed out after 30 seconds: {str(e)}"
    except OSError as e:
        error_msg = f"Error sending email: {str(e)}"

    elapsed = (datetime.now() - start_time).total_seconds()
    logger.error(f"[EMAIL] FAILED ({elapsed:.2f}s): {error_msg}")
    return False, error_msg


def _receipt_html(student: dict, entry: dict) -> str:
    reason_row = f"<tr><td>Reason</td><td>{entry['reason']}</td></tr>" if entry.get('reason') else ''
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 20px auto; border: 1px solid #eee; border-radius: 8px; }}
            .header {{ background: #2563eb; color: white; padding: 20px; text-align: center; }}
            .content {{ padding: 20px; }}
            td {{ padding: 6px 12px; }}
            .amount {{ font-size: 24px; font-weight: bold; color: #2563eb; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header"><h2>Payment Receipt</h2></div>
            <div class="content">
                <p>Dear <strong>{student['name']}</strong>,</p>
                <p>Your payment has been recorded. Receipt details:</p>
                <p class="amount">{entry['amount']:,.2f}</p>
                <table>
                    <tr><td>Receipt No</td><td>{entry['receipt_number']}</td></tr>
                    <tr><td>PRN</td><td>{student['prn']}</td></tr>
                    <tr><td>Type</td><td>{(entry.get('type') or 'fine').title()}</td></tr>
                    <tr><td>Category</td><td>{entry.get('category') or 'Others'}</td></tr>
                    {reason_row}
                </table>
                <p>The PDF receipt is attached for your records.</p>
            </div>
        </div>
    </body>
    </html>
    """


def send_payment_receipt_email(student: dict, entry: dict) -> Tuple[bool, str]:
    """Email a receipt (HTML body + PDF attachment) for one ledger entry."""
    from receipt_pdf import build_receipt_pdf

    if not student.get('email'):
        return False, "Student has no email on file"

    subject = f"Payment Receipt {entry['receipt_number']}"
    plain_body = (
        f"Dear {student['name']},\n\n"
        f"Your payment of {entry['amount']:,.2f} has been recorded.\n"
        f"Receipt No: {entry['receipt_number']}\n"
        f"PRN: {student['prn']}\n"
    )
    pdf = build_receipt_pdf(student, entry)

    return send_email(
        to_addrs=[student['email']],
        subject=subject,
        html_body=_receipt_html(student, entry),
        plain_body=plain_body,
        attachments=[(f"receipt_{entry['receipt_number']}.pdf", pdf, 'application/pdf')],
    )


def send_payment_receipt_email_async(student: dict, entry: dict) -> Thread:
    """
    Send the receipt email in a background thread. The caller never waits
    for it; failures end up in the log only.
    """
    receipt_number = entry.get('receipt_number', 'unknown')

    def _send():
        try:
            sent, message = send_payment_receipt_email(student, entry)
            if sent:
                logger.info(f"[EMAIL ASYNC THREAD] Receipt {receipt_number} sent to {student.get('email')}")
            else:
                logger.error(f"[EMAIL ASYNC THREAD] Receipt {receipt_number} not sent: {message}")
        except Exception as e:
            logger.exception(f"[EMAIL ASYNC THREAD] Error sending receipt {receipt_number}: {e}")

    thread = Thread(target=_send, daemon=True)
    thread.start()
    return thread
