"""
Review State Machine.

A review has two states and one transition:

    PENDING --approve--> APPROVED

APPROVED is terminal. Re-approving is a no-op that keeps the first approver
and time. Reviewer membership only grows and may change in either state.

The functions here are pure: they take a `Review` and return either the
same object (nothing to do) or a new one. Persistence is the caller's job.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from ..models import ReviewStatus


@dataclass(frozen=True)
class Review:
    """Domain view of a tracked pull request review."""
    id: int | None
    pr_url: str
    description: str
    channel_id: str
    correlation_key: str
    reviewers: frozenset[str]
    status: ReviewStatus
    team_id: str
    created_at: datetime
    approved_at: datetime | None = None
    approved_by: str | None = None

    def __post_init__(self):
        approved = self.status == ReviewStatus.APPROVED
        has_approval = self.approved_at is not None and self.approved_by is not None
        partial = (self.approved_at is None) != (self.approved_by is None)
        if partial or approved != has_approval:
            raise ValueError(
                f"Review {self.correlation_key}: approved_at/approved_by must be set "
                f"exactly when status is approved (status={self.status.value})"
            )

    @property
    def is_pending(self) -> bool:
        return self.status == ReviewStatus.PENDING


class ReviewSignal(str, Enum):
    """Slack reactions the bot acts on."""

    WATCHING = "eyes"
    APPROVED = "white_check_mark"

    @classmethod
    def from_reaction(cls, reaction: str) -> "ReviewSignal | None":
        """Map a reaction name to a signal, or None if the bot ignores it."""
        try:
            return cls(reaction)
        except ValueError:
            return None


def add_reviewer(review: Review, user_id: str) -> Review:
    """Add a user to the reviewer set. Idempotent, allowed in any state."""
    if user_id in review.reviewers:
        return review
    return replace(review, reviewers=review.reviewers | {user_id})


def approve(review: Review, approver_id: str, at: datetime) -> Review:
    """Move a pending review to APPROVED. Already approved reviews are returned unchanged."""
    if review.status == ReviewStatus.APPROVED:
        return review
    return replace(
        review,
        status=ReviewStatus.APPROVED,
        approved_by=approver_id,
        approved_at=at,
    )
