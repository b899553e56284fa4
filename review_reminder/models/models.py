"""SQLAlchemy ORM models for review tracking.

Reviewers are stored one row per user so that membership is a real set
enforced by the database, and concurrent additions cannot overwrite each
other.
"""

from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, CreatedAtMixin, IntegerIDMixin


# =============================================================================
# ENUMS
# =============================================================================


class ReviewStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"


# =============================================================================
# REVIEW MODELS
# =============================================================================


class PRReview(Base, IntegerIDMixin, CreatedAtMixin):
    """A pull request waiting for review, announced in a Slack channel."""

    __tablename__ = "pr_reviews"

    pr_url: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    channel_id: Mapped[str] = mapped_column(String(50), nullable=False)
    message_ts: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Slack ts of the announcement; the review's external key"
    )
    team_id: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[ReviewStatus] = mapped_column(
        Enum(ReviewStatus, name="review_status", values_callable=lambda x: [e.value for e in x]),
        default=ReviewStatus.PENDING,
        nullable=False,
    )
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(50), nullable=True)

    reviewers: Mapped[list["PRReviewer"]] = relationship(
        back_populates="review",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "(status = 'approved') = (approved_at IS NOT NULL AND approved_by IS NOT NULL)",
            name="approval_complete",
        ),
        Index("idx_pr_reviews_status", "status"),
    )


class PRReviewer(Base, IntegerIDMixin):
    """Membership of one Slack user in a review's reviewer set."""

    __tablename__ = "pr_review_reviewers"

    review_id: Mapped[int] = mapped_column(
        ForeignKey("pr_reviews.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(50), nullable=False)
    added_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    review: Mapped[PRReview] = relationship(back_populates="reviewers")

    __table_args__ = (
        UniqueConstraint("review_id", "user_id", name="uq_pr_review_reviewers_member"),
    )


# =============================================================================
# WORKSPACE
# =============================================================================


class Workspace(Base, IntegerIDMixin):
    """A Slack workspace the bot is installed in."""

    __tablename__ = "workspaces"

    team_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    team_name: Mapped[str] = mapped_column(String(255), nullable=False)
    access_token: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Bot token, Fernet-encrypted when an encryption key is configured"
    )
    bot_user_id: Mapped[str] = mapped_column(String(50), nullable=False)
    installed_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
