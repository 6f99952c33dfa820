"""Email delivery of the end-of-run status report."""

import logging
import smtplib
from email.message import EmailMessage

from .config import NotifySettings

logger = logging.getLogger(__name__)


def build_message(settings: NotifySettings, report: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = settings.subject
    msg["From"] = settings.sender
    msg["To"] = ", ".join(settings.recipients)
    msg.set_content(report)
    return msg


def send_report(settings: NotifySettings, report: str, debug: bool = False) -> bool:
    """Email the status report to the configured recipients.

    Args:
        settings: Recipient, sender and SMTP server
        report: Rendered status report
        debug: Log the message instead of sending it

    Returns:
        True if the message was sent (or would have been, in debug mode)
    """
    if not settings.recipients:
        logger.error("Could not send notification email, no recipient address is configured")
        return False

    msg = build_message(settings, report)
    if debug:
        logger.info(f"DEBUG: Not sending notification email to {msg['To']}")
        return True

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Could not send notification email to {msg['To']}: {e}")
        return False

    logger.info(f"Sent notification email to {msg['To']}")
    return True
