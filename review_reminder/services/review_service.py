"""
Review Service: inbound entry points for review submissions and reactions.

Submission announces the review in Slack and stores it keyed by the
announcement's ts. Reactions on that announcement drive the state machine:

- 👀 (eyes)             -> add the reacting user as a reviewer
- ✅ (white_check_mark) -> approve, then confirm in the thread
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from ..models import ReviewStatus
from . import review_state
from .errors import ReviewError, ValidationError
from .review_state import Review, ReviewSignal
from .review_store import NewReview, ReviewStore
from .slack_blocks import REVIEW_REQUEST_FALLBACK_TEXT, ReviewBlocks
from .slack_gateway import SlackGateway

logger = logging.getLogger(__name__)


@dataclass
class ReactionOutcome:
    """What a reaction did to its review."""
    signal: ReviewSignal | None
    review: Review | None = None
    changed: bool = False


class ReviewService:
    """Applies submissions and reactions to reviews."""

    def __init__(self, store: ReviewStore, gateway: SlackGateway):
        self.store = store
        self.gateway = gateway

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    async def submit_review(
        self,
        pr_url: str,
        description: str,
        channel_id: str,
        reviewer_ids: Iterable[str],
        team_id: str,
    ) -> Review:
        """
        Announce a new review in the channel and start tracking it.

        Raises:
            ValidationError: missing URL, channel or team
            TransientGatewayError: the announcement could not be posted
        """
        pr_url = (pr_url or "").strip()
        if not pr_url:
            raise ValidationError("A pull request URL is required")
        if not channel_id:
            raise ValidationError("A channel is required")
        if not team_id:
            raise ValidationError("A team is required")

        reviewers = frozenset(r for r in reviewer_ids if r)
        description = (description or "").strip()

        ts = await self.gateway.post_message(
            team_id,
            channel_id,
            REVIEW_REQUEST_FALLBACK_TEXT,
            blocks=ReviewBlocks.announcement(pr_url, description),
        )

        review = await self.store.create_review(NewReview(
            pr_url=pr_url,
            description=description,
            channel_id=channel_id,
            correlation_key=ts,
            reviewers=reviewers,
            team_id=team_id,
        ))
        logger.info(f"PR review stored: {pr_url} ({len(reviewers)} reviewers)")
        return review

    # =========================================================================
    # STATE TRANSITIONS
    # =========================================================================

    async def add_reviewer(self, key: str, user_id: str) -> tuple[Review, bool]:
        """Add a reviewer. Returns the review and whether membership changed."""
        review = await self.store.get_by_correlation_key(key)
        updated = review_state.add_reviewer(review, user_id)
        if updated is review:
            return review, False

        added = await self.store.add_reviewer(key, user_id)
        return updated, added

    async def approve(
        self,
        key: str,
        approver_id: str,
        at: datetime | None = None,
    ) -> tuple[Review, bool]:
        """
        Approve a review. Returns the review and whether this call approved it.

        Approving an approved review changes nothing and returns the stored
        approver and time.
        """
        review = await self.store.get_by_correlation_key(key)
        updated = review_state.approve(review, approver_id, at or datetime.now(timezone.utc))
        if updated is review:
            return review, False

        applied = await self.store.update_status(
            key, ReviewStatus.APPROVED, updated.approved_by, updated.approved_at
        )
        if not applied:
            # Lost the race to another approver
            return await self.store.get_by_correlation_key(key), False
        return updated, True

    # =========================================================================
    # REACTIONS
    # =========================================================================

    async def handle_reaction(
        self,
        team_id: str,
        reaction: str,
        user_id: str,
        channel_id: str,
        key: str,
    ) -> ReactionOutcome:
        """Route a reaction_added event to the matching transition."""
        signal = ReviewSignal.from_reaction(reaction)
        if signal is None:
            return ReactionOutcome(signal=None)

        if signal == ReviewSignal.WATCHING:
            review, changed = await self.add_reviewer(key, user_id)
            if changed:
                logger.info(f"{user_id} is reviewing PR {review.pr_url}")
            return ReactionOutcome(signal=signal, review=review, changed=changed)

        review, changed = await self.approve(key, user_id)
        if changed:
            logger.info(f"{user_id} approved PR {review.pr_url}")
            await self._confirm_approval(team_id, channel_id, key, user_id)
        return ReactionOutcome(signal=signal, review=review, changed=changed)

    async def _confirm_approval(
        self,
        team_id: str,
        channel_id: str,
        key: str,
        user_id: str,
    ) -> None:
        """Post the approval confirmation in the review thread.

        The approval is already stored, so any review error here (Slack, workspace
        lookup, token decryption) is only logged."""
        try:
            name = await self.gateway.get_user_name(team_id, user_id)
        except ReviewError as e:
            logger.warning(f"Error getting user info for {user_id}: {e}")
            name = f"<@{user_id}>"

        try:
            await self.gateway.post_message(
                team_id,
                channel_id,
                ReviewBlocks.approval_text(name),
                thread_ts=key,
            )
        except ReviewError as e:
            logger.error(f"Error posting approval message for review {key}: {e}")
