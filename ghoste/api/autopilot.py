"""
Autopilot API routes: the scheduled run and the inbound SMS reply webhook.
"""
import logging
from fastapi import APIRouter, Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from ghoste.database import get_session
from ghoste.api.deps import require_cron_secret
from ghoste.schemas.autopilot import AutopilotRunResponse, InboundReply, ReplyResponse
from ghoste.services.autopilot_service import AutopilotService
from ghoste.services.reply_service import ReplyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/autopilot", tags=["autopilot"])
webhook_router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/run", response_model=AutopilotRunResponse, dependencies=[Depends(require_cron_secret)])
async def run_autopilot(session: AsyncSession = Depends(get_session)):
    """Decide and act on every managed campaign."""
    service = AutopilotService(session)
    return await service.run()


async def _read_reply(request: Request) -> InboundReply:
    # SMS providers post form data; JSON is accepted for manual testing
    if request.headers.get("content-type", "").startswith("application/json"):
        payload = await request.json()
    else:
        payload = dict(await request.form())
    return InboundReply.model_validate(payload or {})


@webhook_router.post("/sms-reply", response_model=ReplyResponse)
async def sms_reply(request: Request, session: AsyncSession = Depends(get_session)):
    """
    Inbound SMS reply to an approval request.

    Always answers 200 so the provider never retries; problems are
    reported in the body and the logs.
    """
    try:
        reply = await _read_reply(request)
        service = ReplyService(session)
        return await service.process(reply.From, reply.Body)
    except Exception as e:
        logger.exception(f"SMS reply processing failed: {e!r}")
        await session.rollback()
        return ReplyResponse(message="Reply received")
