"""
Review Store: durable storage for reviews and workspace credentials.

Every operation runs in its own session and transaction. Mutations are
atomic per review:
- reviewer additions insert one row each, guarded by a unique constraint,
  so concurrent additions never lose one another
- approval is a compare-and-swap UPDATE that only matches pending rows
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, Sequence
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import Settings
from ..core.security import decrypt_token, encrypt_token
from ..models import PRReview, PRReviewer, ReviewStatus, Workspace
from .errors import (
    ReviewNotFoundError,
    TransientStoreError,
    ValidationError,
    WorkspaceNotFoundError,
)
from .review_state import Review

logger = logging.getLogger(__name__)


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class NewReview:
    """Everything needed to create a review, before the store assigns an id."""
    pr_url: str
    description: str
    channel_id: str
    correlation_key: str
    reviewers: frozenset[str]
    team_id: str
    created_at: datetime | None = None


# =============================================================================
# INTERFACES
# =============================================================================


class ReviewStore(Protocol):
    async def create_review(self, review: NewReview) -> Review:
        ...

    async def get_by_correlation_key(self, key: str) -> Review:
        ...

    async def add_reviewer(self, key: str, user_id: str) -> bool:
        ...

    async def update_status(
        self, key: str, status: ReviewStatus, approver_id: str, at: datetime
    ) -> bool:
        ...

    async def list_pending(self) -> Sequence[Review]:
        ...


class CredentialResolver(Protocol):
    async def resolve_credential(self, team_id: str) -> str:
        ...


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_domain(row: PRReview) -> Review:
    """Convert an ORM row (with reviewers loaded) to the domain dataclass."""
    return Review(
        id=row.id,
        pr_url=row.pr_url,
        description=row.description,
        channel_id=row.channel_id,
        correlation_key=row.message_ts,
        reviewers=frozenset(r.user_id for r in row.reviewers),
        status=row.status,
        team_id=row.team_id,
        created_at=_as_utc(row.created_at),
        approved_at=_as_utc(row.approved_at),
        approved_by=row.approved_by,
    )


# =============================================================================
# SQL REVIEW STORE
# =============================================================================


class SqlReviewStore:
    """ReviewStore backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_review(self, review: NewReview) -> Review:
        """Insert a pending review. Raises ValidationError if the key is taken."""
        created_at = review.created_at or datetime.now(timezone.utc)
        row = PRReview(
            pr_url=review.pr_url,
            description=review.description,
            channel_id=review.channel_id,
            message_ts=review.correlation_key,
            team_id=review.team_id,
            status=ReviewStatus.PENDING,
            created_at=created_at,
            reviewers=[PRReviewer(user_id=user_id) for user_id in sorted(review.reviewers)],
        )

        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ValidationError(
                    f"A review already exists for key {review.correlation_key}"
                ) from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise TransientStoreError(f"Failed to store review: {e}") from e

            logger.info(f"Review {row.message_ts} stored for {row.pr_url}")
            return to_domain(row)

    async def get_by_correlation_key(self, key: str) -> Review:
        try:
            async with self._session_factory() as session:
                row = await self._get_row(session, key)
                return to_domain(row)
        except SQLAlchemyError as e:
            raise TransientStoreError(f"Failed to load review {key}: {e}") from e

    async def add_reviewer(self, key: str, user_id: str) -> bool:
        """
        Add a user to a review's reviewer set.

        Returns True if the user was added, False if already present.
        """
        try:
            async with self._session_factory() as session:
                row = await self._get_row(session, key)
                if any(r.user_id == user_id for r in row.reviewers):
                    return False

                session.add(PRReviewer(review_id=row.id, user_id=user_id))
                try:
                    await session.commit()
                except IntegrityError:
                    # A concurrent call added the same user first
                    await session.rollback()
                    return False
                return True
        except SQLAlchemyError as e:
            raise TransientStoreError(f"Failed to add reviewer to {key}: {e}") from e

    async def update_status(
        self,
        key: str,
        status: ReviewStatus,
        approver_id: str,
        at: datetime,
    ) -> bool:
        """
        Approve a pending review.

        Only rows still PENDING are updated, so a review approved by someone
        else in the meantime keeps its original approver. Returns True if this
        call performed the transition.
        """
        if status != ReviewStatus.APPROVED:
            raise ValidationError(f"Cannot move a review to {status.value}")

        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(PRReview)
                    .where(
                        PRReview.message_ts == key,
                        PRReview.status == ReviewStatus.PENDING,
                    )
                    .values(status=status, approved_by=approver_id, approved_at=at)
                )
                if result.rowcount:
                    await session.commit()
                    return True

                await session.rollback()
                # Either missing or already approved
                await self._get_row(session, key)
                return False
        except SQLAlchemyError as e:
            raise TransientStoreError(f"Failed to update status of {key}: {e}") from e

    async def list_pending(self) -> list[Review]:
        """Snapshot of all reviews still waiting for approval, oldest first."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(PRReview)
                    .where(PRReview.status == ReviewStatus.PENDING)
                    .order_by(PRReview.created_at.asc(), PRReview.id.asc())
                )
                return [to_domain(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise TransientStoreError(f"Failed to list pending reviews: {e}") from e

    async def _get_row(self, session: AsyncSession, key: str) -> PRReview:
        """Get a review row or raise ReviewNotFoundError."""
        result = await session.execute(
            select(PRReview).where(PRReview.message_ts == key)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise ReviewNotFoundError(key)
        return row


# =============================================================================
# SQL WORKSPACE STORE
# =============================================================================


class SqlWorkspaceStore:
    """Reads installed workspace credentials."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings

    async def resolve_credential(self, team_id: str) -> str:
        """Get the decrypted bot token for a workspace."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Workspace.access_token).where(Workspace.team_id == team_id)
                )
                token = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise TransientStoreError(f"Failed to load workspace {team_id}: {e}") from e

        if token is None:
            raise WorkspaceNotFoundError(team_id)
        try:
            return decrypt_token(token, self._settings)
        except ValueError as e:
            raise TransientStoreError(f"Workspace {team_id} token could not be decrypted") from e

    async def save_workspace(
        self,
        team_id: str,
        team_name: str,
        access_token: str,
        bot_user_id: str,
    ) -> None:
        """Insert or update a workspace; the token is encrypted before storage."""
        encrypted = encrypt_token(access_token, self._settings)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Workspace).where(Workspace.team_id == team_id)
                )
                workspace = result.scalar_one_or_none()
                if workspace is None:
                    workspace = Workspace(team_id=team_id)
                    session.add(workspace)
                workspace.team_name = team_name
                workspace.access_token = encrypted
                workspace.bot_user_id = bot_user_id
                await session.commit()
        except SQLAlchemyError as e:
            raise TransientStoreError(f"Failed to save workspace {team_id}: {e}") from e

        logger.info(f"Workspace {team_id} ({team_name}) saved")
