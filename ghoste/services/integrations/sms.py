"""
SMS provider implementations.
"""
import logging
from typing import List

from ghoste.services.integrations.base import SmsProvider

logger = logging.getLogger(__name__)


class MockSmsProvider(SmsProvider):
    """
    Mock SMS provider for development/testing.
    Logs messages instead of sending them and keeps them in `outbox`.
    """

    def __init__(self):
        self.outbox: List[dict] = []

    async def send(self, to: str, body: str) -> bool:
        self.outbox.append({"to": to, "body": body})
        logger.info(f"[MOCK SMS] To: {to}, Body: {body[:80]}")
        return True


# Provider factory
_current_provider: SmsProvider = None


def get_sms_provider() -> SmsProvider:
    """Get the current SMS provider instance."""
    global _current_provider
    if _current_provider is None:
        _current_provider = MockSmsProvider()
    return _current_provider


def set_sms_provider(provider: SmsProvider) -> None:
    """Set the SMS provider."""
    global _current_provider
    _current_provider = provider
