"""Engagement Resolver: which reviewers are watching a review right now.

Engagement is read live from Slack on every evaluation and never stored.
"""

import logging
from typing import Protocol

from .errors import ReviewError
from .review_state import Review, ReviewSignal

logger = logging.getLogger(__name__)


class ReactionSource(Protocol):
    async def get_reaction_users(
        self, team_id: str, channel: str, ts: str, reaction: str
    ) -> frozenset[str]:
        ...


class EngagementResolver(Protocol):
    async def resolve(self, review: Review) -> frozenset[str]:
        ...


class ReactionEngagementResolver:
    """Users who put the watching reaction on the review announcement."""

    def __init__(self, gateway: ReactionSource, reaction: str = ReviewSignal.WATCHING.value):
        self.gateway = gateway
        self.reaction = reaction

    async def resolve(self, review: Review) -> frozenset[str]:
        try:
            return await self.gateway.get_reaction_users(
                review.team_id,
                review.channel_id,
                review.correlation_key,
                self.reaction,
            )
        except ReviewError as e:
            # Reminders fall back to the assigned reviewers
            logger.warning(f"Could not read reactions for review {review.correlation_key}: {e}")
            return frozenset()
