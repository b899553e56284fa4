"""Notification Dispatcher: turns an escalation into a threaded Slack reply."""

import logging
from typing import Protocol

from .errors import TransientGatewayError
from .escalation_policy import Escalation
from .review_state import Review

logger = logging.getLogger(__name__)


class MessageSender(Protocol):
    async def post_message(
        self,
        team_id: str,
        channel: str,
        text: str,
        thread_ts: str | None = None,
        blocks: list[dict] | None = None,
    ) -> str:
        ...


def format_mention(recipient: str) -> str:
    """User ids become <@U123>; special mentions like <!channel> pass through."""
    if recipient.startswith("<"):
        return recipient
    return f"<@{recipient}>"


def compose_reminder(review: Review, escalation: Escalation) -> str:
    text = f"🔔 *Reminder:* PR needs review\n<{review.pr_url}|Open PR>\n"
    if escalation.recipients:
        mentions = ", ".join(format_mention(r) for r in escalation.recipients)
        text += f"Hey {mentions}! {escalation.tone}"
    return text


class ReminderDispatcher:
    """
    Sends reminders through the messaging gateway.

    Send failures are logged and reported as False; the review stays pending,
    so the next tick tries again. Credential lookup errors propagate to the
    caller.
    """

    def __init__(self, gateway: MessageSender):
        self.gateway = gateway
        self._in_flight: set[str] = set()

    async def dispatch(self, review: Review, escalation: Escalation) -> bool:
        key = review.correlation_key
        if key in self._in_flight:
            logger.info(f"Reminder for review {key} already being sent, skipping")
            return False

        self._in_flight.add(key)
        try:
            await self.gateway.post_message(
                review.team_id,
                review.channel_id,
                compose_reminder(review, escalation),
                thread_ts=key,
            )
        except TransientGatewayError as e:
            logger.error(f"Error posting reminder for review {key}: {e}")
            return False
        finally:
            self._in_flight.discard(key)

        logger.info(f"Sent {escalation.tier.value} reminder for review {key}")
        return True
