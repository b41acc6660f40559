"""
Base interfaces for integration providers.
Abstract base classes for third-party service integrations.
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, List

from pydantic import BaseModel


class SmsProvider(ABC):
    """Base interface for SMS providers (Twilio, MessageBird, etc.)"""

    @abstractmethod
    async def send(self, to: str, body: str) -> bool:
        """Send a text message. Returns True once the provider accepted it."""
        pass


class EmailProvider(ABC):
    """Base interface for email providers (Mailgun, SES, etc.)"""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        from_email: Optional[str] = None
    ) -> bool:
        """Send an email."""
        pass


class AdCampaignSpec(BaseModel):
    """Everything the ad platform needs to build one campaign."""
    name: str
    ad_goal: str
    daily_budget_cents: int
    destination_url: str
    creative_urls: List[str] = []

    # Chosen ad-platform assets
    ad_account_id: str
    page_id: Optional[str] = None
    instagram_actor_id: Optional[str] = None
    pixel_id: Optional[str] = None


class AdPlatformProvider(ABC):
    """Base interface for the external ad platform (Meta)."""

    @abstractmethod
    async def execute_campaign(
        self,
        spec: AdCampaignSpec,
        existing_ids: Optional[Dict[str, Optional[str]]] = None
    ) -> Dict[str, Optional[str]]:
        """
        Create campaign, ad set, creative and ad.

        Stages whose id is already present in `existing_ids` are skipped,
        so a failed or interrupted execution can be resumed.

        Returns:
            {"meta_campaign_id", "meta_adset_id", "meta_creative_id", "meta_ad_id"}

        Raises:
            ExternalServiceError with the failing stage and the ids created so far
        """
        pass

    @abstractmethod
    async def pause_campaign(self, external_campaign_id: str) -> None:
        """Stop delivery of a live campaign."""
        pass
