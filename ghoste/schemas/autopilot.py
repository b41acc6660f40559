"""
Autopilot, reply webhook and scheduler schemas.
"""
from typing import Optional, Dict
from pydantic import BaseModel, Field


class AutopilotRunResponse(BaseModel):
    ok: bool = True
    killswitch_active: bool = False
    evaluated: int = 0
    decisions: Dict[str, int] = {}
    approvals_created: int = 0
    paused: int = 0
    notifications_sent: int = 0
    notifications_skipped: int = 0
    errors: int = 0


class InboundReply(BaseModel):
    """SMS provider webhook body (Twilio-style field names)."""
    From: Optional[str] = Field(default=None)
    Body: Optional[str] = Field(default=None)


class ReplyResponse(BaseModel):
    ok: bool = True
    message: Optional[str] = None
    response_recorded: bool = False
    action: Optional[str] = None
    budget_updated: bool = False


class EnqueueResponse(BaseModel):
    ok: bool = True
    enqueued: int = 0
    skipped: int = 0
