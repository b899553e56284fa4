"""Pytest fixtures for the review reminder tests.

Store tests run against a SQLite file database (one per test) through
aiosqlite, so that concurrent sessions get their own connections. Slack is
replaced by `FakeSlackGateway`, which records what would have been sent.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from review_reminder.models import Base, ReviewStatus
from review_reminder.services.errors import TransientGatewayError
from review_reminder.services.review_state import Review
from review_reminder.services.review_store import SqlReviewStore


NOW = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock for the scheduler."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeSlackGateway:
    """In-memory stand-in for SlackGateway."""

    def __init__(self):
        self.posted: list[dict] = []
        self.reactions: dict[tuple[str, str], set[str]] = {}
        self.user_names: dict[str, str] = {}
        self.failing_posts: set[str] = set()      # channels whose posts fail
        self.failing_reactions: set[str] = set()  # message ts whose lookups fail
        self._next_ts = 1700000000

    async def post_message(self, team_id, channel, text, thread_ts=None, blocks=None):
        if channel in self.failing_posts:
            raise TransientGatewayError(f"channel_not_found: {channel}")
        self._next_ts += 1
        ts = f"{self._next_ts}.000100"
        self.posted.append({
            "team_id": team_id,
            "channel": channel,
            "text": text,
            "thread_ts": thread_ts,
            "blocks": blocks,
            "ts": ts,
        })
        return ts

    async def get_reaction_users(self, team_id, channel, ts, reaction):
        if ts in self.failing_reactions:
            raise TransientGatewayError("ratelimited")
        return frozenset(self.reactions.get((ts, reaction), set()))

    async def get_user_name(self, team_id, user_id):
        return self.user_names.get(user_id, user_id)

    def replies_to(self, ts: str) -> list[dict]:
        return [p for p in self.posted if p["thread_ts"] == ts]


def make_review(
    key: str = "1700000000.000100",
    reviewers: set[str] | frozenset[str] = frozenset({"UALICE", "UBOB"}),
    created_at: datetime = NOW,
    status: ReviewStatus = ReviewStatus.PENDING,
    **kwargs,
) -> Review:
    """Build a domain Review for tests that do not need the database."""
    if status == ReviewStatus.APPROVED:
        kwargs.setdefault("approved_by", "UCAROL")
        kwargs.setdefault("approved_at", created_at)
    return Review(
        id=kwargs.pop("id", 1),
        pr_url=kwargs.pop("pr_url", "https://github.com/acme/api/pull/42"),
        description=kwargs.pop("description", "Add rate limiting"),
        channel_id=kwargs.pop("channel_id", "CREVIEWS"),
        correlation_key=key,
        reviewers=frozenset(reviewers),
        status=status,
        team_id=kwargs.pop("team_id", "TACME"),
        created_at=created_at,
        **kwargs,
    )


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """SQLite engine on a fresh file database."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'reviews.db'}",
        echo=False,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def store(session_factory) -> SqlReviewStore:
    return SqlReviewStore(session_factory)


@pytest.fixture
def gateway() -> FakeSlackGateway:
    return FakeSlackGateway()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
