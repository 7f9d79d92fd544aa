"""
Mail Service - SMTP delivery for verification codes and application notices.
"""

import logging
import smtplib
from email.message import EmailMessage

from app.core.config import get_settings
from app.core.errors import MailError

settings = get_settings()
logger = logging.getLogger(__name__)


class MailService:
    """Sends HTML mail from the configured SMTP account (STARTTLS)."""

    def __init__(self, host: str = None, port: int = None, user: str = None, password: str = None):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.user = user if user is not None else settings.smtp_user
        self.password = password if password is not None else settings.smtp_password

    def build_message(self, to_email: str, title: str, content: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.user
        message["To"] = to_email
        message["Subject"] = title
        message.set_content(content, subtype="html")
        return message

    def send_mail(self, to_email: str, title: str, content: str):
        message = self.build_message(to_email, title, content)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"Mail to {to_email} failed: {e}") from e
        logger.info("Mail sent", extra={"to": to_email, "subject": title})


# Singleton instance
_mail_service: MailService = None


def get_mail_service() -> MailService:
    """Get or create the mail service (singleton pattern)"""
    global _mail_service
    if _mail_service is None:
        _mail_service = MailService()
    return _mail_service


def test_smtp_connection() -> bool:
    """Check that the SMTP account accepts a login."""
    service = get_mail_service()
    try:
        with smtplib.SMTP(service.host, service.port, timeout=10) as server:
            server.starttls()
            server.login(service.user, service.password)
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error("SMTP connection failed: %s", e)
        return False
