import os
import tempfile
import uuid
from datetime import datetime, timedelta

# Must be set before ghoste.config is imported
_DB_DIR = tempfile.mkdtemp(prefix="ghoste-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/ghoste_test.db"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["CRON_SECRET"] = ""
os.environ["PUBLIC_BASE_URL"] = "https://ghoste.test"

import jwt
import pytest
import pytest_asyncio
from sqlmodel import SQLModel

import ghoste.models  # noqa: F401  (registers every table)
from ghoste.config import settings
from ghoste.core.exceptions import ExternalServiceError
from ghoste.database import engine, async_session_factory
from ghoste.models.ad_platform import MetaCredential
from ghoste.models.campaign import AdCampaign, CampaignStatus
from ghoste.models.user import User
from ghoste.services.activity_service import ActivityService
from ghoste.services.integrations.base import AdPlatformProvider
from ghoste.services.integrations.meta_ads import ID_FIELDS
from ghoste.services.integrations.sms import MockSmsProvider
from ghoste.services.integrations.email import MockEmailProvider

STAGES = ("create_campaign", "create_adset", "create_creative", "create_ad")

TEST_PHONE = "+1 (555) 010-2000"


class FakeAdPlatform(AdPlatformProvider):
    """Hands out predictable ids; can fail at a chosen stage."""

    def __init__(self, fail_stage=None):
        self.fail_stage = fail_stage
        self.calls = []
        self.paused = []

    async def execute_campaign(self, spec, existing_ids=None):
        existing_ids = dict(existing_ids or {})
        self.calls.append((spec, existing_ids))
        ids = {field: existing_ids.get(field) for field in ID_FIELDS}
        for field, stage in zip(ID_FIELDS, STAGES):
            if ids[field]:
                continue
            if stage == self.fail_stage:
                raise ExternalServiceError("Meta", "(#100) Invalid parameter", stage=stage, partial_ids=dict(ids))
            ids[field] = f"{field}_1"
        return ids

    async def pause_campaign(self, external_campaign_id):
        self.paused.append(external_campaign_id)


@pytest_asyncio.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db):
    async with async_session_factory() as session:
        yield session


@pytest.fixture
def activity():
    return ActivityService(async_session_factory)


@pytest.fixture
def ad_platform():
    return FakeAdPlatform()


@pytest.fixture
def provider_factory(ad_platform):
    return lambda credential: ad_platform


@pytest.fixture
def sms():
    return MockSmsProvider()


@pytest.fixture
def email():
    return MockEmailProvider()


@pytest_asyncio.fixture
async def user(session):
    user = User(email="artist@example.com", phone=TEST_PHONE, artist_name="Nova")
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def other_user(session):
    user = User(email="someone@example.com", artist_name="Someone Else")
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def credential(session, user):
    credential = MetaCredential(
        user_id=user.id,
        access_token="meta-token",
        ad_account_id="act_123",
        page_id="page_1",
        pixel_id="pixel_1",
    )
    session.add(credential)
    await session.commit()
    await session.refresh(credential)
    return credential


async def make_campaign(session, user, **overrides) -> AdCampaign:
    values = dict(
        user_id=user.id,
        campaign_name="Midnight Drive",
        ad_goal="promote_song",
        campaign_type="smart_link_probe",
        automation_mode="guided",
        status=CampaignStatus.PUBLISHED,
        destination_url="https://ghoste.test/l/midnight",
        daily_budget_cents=2000,
        max_daily_budget_cents=4000,
        creative_ids=["c1", "c2", "c3"],
        notification_method="sms",
        notification_phone=user.phone,
        notification_email=user.email,
    )
    values.update(overrides)
    campaign = AdCampaign(**values)
    session.add(campaign)
    await session.commit()
    await session.refresh(campaign)
    return campaign


def make_token(user_id: uuid.UUID, expires_in: timedelta = timedelta(hours=1)) -> str:
    payload = {
        "sub": str(user_id),
        "aud": settings.JWT_AUDIENCE,
        "exp": datetime.utcnow() + expires_in,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


@pytest.fixture
def campaign_factory(session, user):
    async def factory(**overrides):
        return await make_campaign(session, user, **overrides)
    return factory


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {make_token(user.id)}"}
