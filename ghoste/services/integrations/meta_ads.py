"""
Meta Marketing API integration.
Builds a campaign as four named stages: campaign, ad set, creative, ad.

Budgets live on the ad set (ABO). Everything is created PAUSED so that
nothing spends until the campaign is reviewed in Ads Manager.
"""
import logging
from datetime import datetime
from typing import Optional, Dict, Any, Callable, Awaitable, Tuple

import httpx

from ghoste.config import settings
from ghoste.core.cache import RefreshingCache
from ghoste.core.exceptions import ExternalServiceError
from ghoste.models.ad_platform import MetaCredential
from ghoste.services.integrations.base import AdPlatformProvider, AdCampaignSpec

logger = logging.getLogger(__name__)

ID_FIELDS = ("meta_campaign_id", "meta_adset_id", "meta_creative_id", "meta_ad_id")

# Invalid / expired OAuth token
OAUTH_ERROR_CODE = 190

_OBJECTIVES = {
    "OUTCOME_TRAFFIC": ("link_clicks", "traffic", "website_traffic", "landing_page_views"),
    "OUTCOME_AWARENESS": ("awareness", "brand_awareness", "reach"),
    "OUTCOME_ENGAGEMENT": ("engagement", "post_engagement", "page_likes", "video_views", "messages"),
    "OUTCOME_LEADS": ("leads", "lead_generation", "instant_forms"),
    "OUTCOME_SALES": ("conversions", "purchases", "sales", "website_purchases"),
    "OUTCOME_APP_PROMOTION": ("app_installs", "app", "app_promotion"),
}
GOAL_TO_OBJECTIVE = {goal: objective for objective, goals in _OBJECTIVES.items() for goal in goals}


def map_goal_to_objective(ad_goal: Optional[str]) -> str:
    """Map an ad goal (any casing, spaces or dashes) to a Meta outcome objective."""
    goal = (ad_goal or "").strip().lower().replace(" ", "_").replace("-", "_")
    return GOAL_TO_OBJECTIVE.get(goal, "OUTCOME_TRAFFIC")


def normalize_ad_account_id(ad_account_id: str) -> str:
    return ad_account_id if ad_account_id.startswith("act_") else f"act_{ad_account_id}"


class MetaAdsClient(AdPlatformProvider):
    """
    Meta Graph API client for campaign creation.

    The access token is held in a RefreshingCache owned by this client;
    an OAuth error drops it so the next call reloads it.
    """

    def __init__(
        self,
        token_loader: Callable[[], Awaitable[Tuple[str, int]]],
        graph_version: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = f"https://graph.facebook.com/{graph_version or settings.META_GRAPH_VERSION}"
        self.token = RefreshingCache(token_loader)
        self.timeout = timeout or settings.META_HTTP_TIMEOUT_SECONDS
        self.transport = transport

    async def execute_campaign(
        self,
        spec: AdCampaignSpec,
        existing_ids: Optional[Dict[str, Optional[str]]] = None
    ) -> Dict[str, Optional[str]]:
        existing_ids = existing_ids or {}
        ids: Dict[str, Optional[str]] = {field: existing_ids.get(field) for field in ID_FIELDS}
        account = normalize_ad_account_id(spec.ad_account_id)
        objective = map_goal_to_objective(spec.ad_goal)

        logger.info(
            f"Executing Meta campaign '{spec.name}' on {account}: objective={objective}, "
            f"resume_from={[k for k, v in ids.items() if v]}"
        )

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            if not ids["meta_campaign_id"]:
                data = await self._post(client, f"/{account}/campaigns", {
                    "name": spec.name,
                    "objective": objective,
                    "status": "PAUSED",
                    "special_ad_categories": [],
                    "is_adset_budget_sharing_enabled": False,
                }, "create_campaign", ids)
                ids["meta_campaign_id"] = data["id"]

            if not ids["meta_adset_id"]:
                data = await self._post(client, f"/{account}/adsets", {
                    "name": f"{spec.name} Ad Set",
                    "campaign_id": ids["meta_campaign_id"],
                    "daily_budget": spec.daily_budget_cents,
                    "billing_event": "IMPRESSIONS",
                    "optimization_goal": "LINK_CLICKS",
                    "bid_strategy": "LOWEST_COST_WITHOUT_CAP",
                    "destination_type": "WEBSITE",
                    "targeting": {
                        "geo_locations": {"countries": ["US"]},
                        "publisher_platforms": ["facebook", "instagram"],
                    },
                    "status": "PAUSED",
                }, "create_adset", ids)
                ids["meta_adset_id"] = data["id"]

            if not ids["meta_creative_id"]:
                data = await self._post(client, f"/{account}/adcreatives", {
                    "name": f"{spec.name} Creative",
                    "object_story_spec": self._story_spec(spec, account),
                }, "create_creative", ids)
                ids["meta_creative_id"] = data["id"]

            if not ids["meta_ad_id"]:
                data = await self._post(client, f"/{account}/ads", {
                    "name": spec.name,
                    "adset_id": ids["meta_adset_id"],
                    "creative": {"creative_id": ids["meta_creative_id"]},
                    "status": "PAUSED",
                }, "create_ad", ids)
                ids["meta_ad_id"] = data["id"]

        logger.info(f"Meta campaign executed: {ids}")
        return ids

    async def pause_campaign(self, external_campaign_id: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            await self._post(
                client, f"/{external_campaign_id}", {"status": "PAUSED"}, "pause_campaign",
                {"meta_campaign_id": external_campaign_id}, expect_id=False
            )
        logger.info(f"Meta campaign {external_campaign_id} paused")

    def _story_spec(self, spec: AdCampaignSpec, account: str) -> Dict[str, Any]:
        link_data: Dict[str, Any] = {
            "link": spec.destination_url,
            "message": "Check out this track!",
            "call_to_action": {"type": "LEARN_MORE", "value": {"link": spec.destination_url}},
        }
        if spec.creative_urls:
            link_data["picture"] = spec.creative_urls[0]

        story: Dict[str, Any] = {
            "page_id": spec.page_id or account.replace("act_", ""),
            "link_data": link_data,
        }
        if spec.instagram_actor_id:
            story["instagram_actor_id"] = spec.instagram_actor_id
        return story

    async def _post(
        self,
        client: httpx.AsyncClient,
        path: str,
        payload: Dict[str, Any],
        stage: str,
        ids: Dict[str, Optional[str]],
        expect_id: bool = True
    ) -> Dict[str, Any]:
        access_token = await self.token.get()

        try:
            response = await client.post(f"{self.base_url}{path}", json={**payload, "access_token": access_token})
        except httpx.HTTPError as e:
            logger.error(f"Meta request failed at {stage}: {e!r}")
            raise ExternalServiceError("Meta", str(e) or e.__class__.__name__, stage=stage, partial_ids=dict(ids))

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code >= 400 or "error" in data:
            error = data.get("error") or {"message": f"HTTP {response.status_code}", "code": response.status_code}
            if not isinstance(error, dict):
                error = {"message": str(error), "code": response.status_code}
            # Never log the token or the request body
            logger.error(f"Meta Graph API error at {stage}: status={response.status_code} error={error}")
            if error.get("code") == OAUTH_ERROR_CODE:
                self.token.invalidate()
            raise ExternalServiceError(
                "Meta", error.get("message"), stage=stage, partial_ids=dict(ids), raw=error
            )

        if expect_id and not data.get("id"):
            raise ExternalServiceError("Meta", "response carried no id", stage=stage, partial_ids=dict(ids), raw=data)

        return data


def meta_client_for(credential: MetaCredential) -> MetaAdsClient:
    """Client that reads its token from the user's stored Meta credential."""

    async def load_token() -> Tuple[str, int]:
        if not credential.access_token:
            raise ExternalServiceError("Meta", "no access token on file", stage="auth")

        ttl = settings.META_TOKEN_TTL_SECONDS
        if credential.token_expires_at:
            remaining = int((credential.token_expires_at - datetime.utcnow()).total_seconds())
            if remaining <= 0:
                raise ExternalServiceError("Meta", "access token expired", stage="auth")
            ttl = min(ttl, remaining)
        return credential.access_token, ttl

    return MetaAdsClient(load_token)


# Provider factory
AdPlatformFactory = Callable[[MetaCredential], AdPlatformProvider]

_current_factory: AdPlatformFactory = None


def get_ad_platform_factory() -> AdPlatformFactory:
    """Get the factory that builds an ad-platform provider for a credential."""
    global _current_factory
    if _current_factory is None:
        _current_factory = meta_client_for
    return _current_factory


def set_ad_platform_factory(factory: AdPlatformFactory) -> None:
    """Set the ad-platform provider factory."""
    global _current_factory
    _current_factory = factory
