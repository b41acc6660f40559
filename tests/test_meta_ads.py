import json

import httpx
import pytest

from ghoste.core.exceptions import ExternalServiceError
from ghoste.services.integrations.base import AdCampaignSpec
from ghoste.services.integrations.meta_ads import MetaAdsClient, map_goal_to_objective


def _spec(**overrides):
    values = dict(
        name="Midnight Drive",
        ad_goal="link_clicks",
        daily_budget_cents=2000,
        destination_url="https://ghoste.test/l/midnight",
        creative_urls=["https://cdn.example.com/c1.mp4"],
        ad_account_id="123",
        page_id="page_1",
    )
    values.update(overrides)
    return AdCampaignSpec(**values)


class GraphStub:
    """Records requests; answers each edge with a fresh id unless told to fail."""

    def __init__(self, fail_on=None, error=None):
        self.fail_on = fail_on
        self.error = error or {"message": "(#100) Invalid parameter", "code": 100}
        self.requests = []
        self.paths = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        edge = request.url.path.rsplit("/", 1)[-1]
        self.requests.append((edge, body))
        self.paths.append(request.url.path)
        if edge == self.fail_on:
            return httpx.Response(400, json={"error": self.error})
        return httpx.Response(200, json={"id": f"{edge}-{len(self.requests)}"})


def _client(stub, tokens=None):
    tokens = tokens if tokens is not None else []

    async def load_token():
        tokens.append("loaded")
        return "token-abc", 3600

    return MetaAdsClient(load_token, graph_version="v21.0", transport=httpx.MockTransport(stub))


@pytest.mark.parametrize("goal,objective", [
    ("Link Clicks", "OUTCOME_TRAFFIC"),
    ("lead-generation", "OUTCOME_LEADS"),
    ("purchases", "OUTCOME_SALES"),
    (None, "OUTCOME_TRAFFIC"),
])
def test_map_goal_to_objective(goal, objective):
    assert map_goal_to_objective(goal) == objective


async def test_executes_four_stages_paused():
    stub = GraphStub()
    tokens = []

    ids = await _client(stub, tokens).execute_campaign(_spec())

    assert [edge for edge, _ in stub.requests] == ["campaigns", "adsets", "adcreatives", "ads"]
    assert ids == {
        "meta_campaign_id": "campaigns-1",
        "meta_adset_id": "adsets-2",
        "meta_creative_id": "adcreatives-3",
        "meta_ad_id": "ads-4",
    }
    campaign_body, adset_body = stub.requests[0][1], stub.requests[1][1]
    assert campaign_body["status"] == "PAUSED"
    assert adset_body["daily_budget"] == 2000
    assert adset_body["campaign_id"] == "campaigns-1"
    assert adset_body["optimization_goal"] == "LINK_CLICKS"
    assert stub.requests[2][1]["object_story_spec"]["link_data"]["picture"] == "https://cdn.example.com/c1.mp4"
    # Token is cached across stages
    assert tokens == ["loaded"]


async def test_failure_reports_stage_and_partial_ids():
    stub = GraphStub(fail_on="adcreatives")

    with pytest.raises(ExternalServiceError) as exc:
        await _client(stub).execute_campaign(_spec())

    assert exc.value.stage == "create_creative"
    assert exc.value.partial_ids["meta_campaign_id"] == "campaigns-1"
    assert exc.value.partial_ids["meta_adset_id"] == "adsets-2"
    assert exc.value.partial_ids["meta_creative_id"] is None
    assert "Invalid parameter" in exc.value.message


async def test_resume_skips_existing_stages():
    stub = GraphStub()

    ids = await _client(stub).execute_campaign(
        _spec(), existing_ids={"meta_campaign_id": "c-old", "meta_adset_id": "a-old"}
    )

    assert [edge for edge, _ in stub.requests] == ["adcreatives", "ads"]
    assert ids["meta_campaign_id"] == "c-old"
    assert stub.requests[1][1]["adset_id"] == "a-old"


async def test_oauth_error_drops_cached_token():
    stub = GraphStub(fail_on="campaigns", error={"message": "Session has expired", "code": 190})
    tokens = []
    client = _client(stub, tokens)

    for _ in range(2):
        with pytest.raises(ExternalServiceError):
            await client.execute_campaign(_spec())

    assert tokens == ["loaded", "loaded"]


async def test_ad_account_prefix_is_added():
    stub = GraphStub()
    await _client(stub).execute_campaign(_spec(ad_account_id="987"))
    assert stub.paths[0] == "/v21.0/act_987/campaigns"
    assert all("access_token" in body for _, body in stub.requests)


@pytest.mark.parametrize("status,payload", [(200, ["unexpected"]), (500, ["unexpected"]), (400, {"error": "bad"})])
async def test_malformed_graph_body_is_a_stage_failure(status, payload):
    def stub(request):
        return httpx.Response(status, json=payload)

    async def load_token():
        return "token-abc", 3600

    client = MetaAdsClient(load_token, graph_version="v21.0", transport=httpx.MockTransport(stub))

    with pytest.raises(ExternalServiceError) as exc:
        await client.execute_campaign(_spec())

    assert exc.value.stage == "create_campaign"
    assert exc.value.partial_ids["meta_campaign_id"] is None
