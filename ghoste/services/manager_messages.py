"""
Artist-facing message templates for the autopilot.
Deterministic: same decision, campaign and artist always give the same text.
"""
from typing import Optional

from ghoste.services.decision_engine import ManagerDecision, Actions


def generate_message(decision: ManagerDecision, campaign_name: str, artist_name: Optional[str] = None) -> str:
    greeting = f"Hey {artist_name}" if artist_name else "Hey"

    if decision.action == Actions.SPEND_MORE:
        return (
            f"{greeting}, your {campaign_name} campaign is working better than expected. "
            f"Want me to push it a little more? (Reply YES to increase budget by 25%)"
        )

    if decision.action == Actions.SPEND_LESS:
        return (
            f"{greeting}, your {campaign_name} campaign isn't performing as well as we'd like. "
            f"Should I dial back the spend while we optimize? (Reply YES to reduce budget by 25%)"
        )

    if decision.action == Actions.MAKE_MORE_CREATIVES:
        if decision.urgency == "high":
            return (
                f"{greeting}, the videos for {campaign_name} aren't landing. I paused the ads to protect "
                f"your budget. Can you send me 2-3 new clips? I'll give you some inspo."
            )
        return (
            f"{greeting}, {campaign_name} could use some fresh content. "
            f"Got 2-3 new videos you could shoot? I'll send you a quick brief."
        )

    return f"{greeting}, everything's running smooth with {campaign_name}. I'll let you know if anything changes."
