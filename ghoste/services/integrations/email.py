"""
Email provider implementations.
Currently supports: Mock (development) and SMTP (production ready).
"""
import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from typing import List, Optional

from ghoste.config import settings
from ghoste.services.integrations.base import EmailProvider

logger = logging.getLogger(__name__)


class MockEmailProvider(EmailProvider):
    """
    Mock email provider for development/testing.
    Logs emails instead of sending them and keeps them in `outbox`.
    """

    def __init__(self):
        self.outbox: List[dict] = []

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        from_email: Optional[str] = None
    ) -> bool:
        """Mock email sending - logs instead of sending."""
        self.outbox.append({"to": to, "subject": subject, "body": body, "from": from_email})
        logger.info(f"[MOCK EMAIL] To: {to}, Subject: {subject}")
        logger.debug(f"[MOCK EMAIL] Body: {body[:100]}...")
        return True


class SmtpEmailProvider(EmailProvider):
    """
    SMTP email provider for production.
    Configured through SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD and EMAIL_FROM.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = settings.SMTP_USER if user is None else user
        self.password = settings.SMTP_PASSWORD if password is None else password

    def _deliver(self, to: str, subject: str, body: str, from_email: str) -> None:
        msg = MIMEText(body, "plain")
        msg["Subject"] = subject
        msg["From"] = from_email
        msg["To"] = to

        with smtplib.SMTP(self.host, self.port) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.sendmail(from_email, to, msg.as_string())

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        from_email: Optional[str] = None
    ) -> bool:
        """Send email via SMTP. Delivery failures are logged and reported as False."""
        sender = from_email or settings.EMAIL_FROM
        try:
            # smtplib blocks
            await asyncio.to_thread(self._deliver, to, subject, body, sender)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

        logger.info(f"Email sent to {to}: {subject}")
        return True


# Provider factory
_current_provider: EmailProvider = None


def get_email_provider() -> EmailProvider:
    """Get the current email provider instance."""
    global _current_provider
    if _current_provider is None:
        if settings.SMTP_HOST:
            logger.info("Using SMTP email provider")
            _current_provider = SmtpEmailProvider()
        else:
            logger.info("Using mock email provider (emails are logged)")
            _current_provider = MockEmailProvider()
    return _current_provider


def set_email_provider(provider: EmailProvider) -> None:
    """Set the email provider."""
    global _current_provider
    _current_provider = provider
