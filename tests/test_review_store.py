"""
Tests for the SQL Review Store.

These tests verify:
1. CREATE: reviews start pending; duplicate keys are rejected untouched
2. REVIEWERS: additions are idempotent and survive concurrency
3. APPROVE: compare-and-swap keeps the first approver
4. LIST: only pending reviews are returned
"""

import asyncio
from datetime import timedelta

import pytest
from cryptography.fernet import Fernet

from review_reminder.core.config import Settings
from review_reminder.models import ReviewStatus
from review_reminder.services.errors import (
    ReviewNotFoundError,
    TransientStoreError,
    ValidationError,
    WorkspaceNotFoundError,
)
from review_reminder.services.review_store import NewReview, SqlWorkspaceStore

from .conftest import NOW


def new_review(key: str = "1700000001.000100", reviewers=("UALICE", "UBOB"), **kwargs) -> NewReview:
    return NewReview(
        pr_url=kwargs.get("pr_url", "https://github.com/acme/api/pull/42"),
        description=kwargs.get("description", "Add rate limiting"),
        channel_id=kwargs.get("channel_id", "CREVIEWS"),
        correlation_key=key,
        reviewers=frozenset(reviewers),
        team_id=kwargs.get("team_id", "TACME"),
        created_at=kwargs.get("created_at", NOW),
    )


class TestCreateReview:

    async def test_created_review_is_pending(self, store):
        review = await store.create_review(new_review())

        assert review.id is not None
        assert review.status == ReviewStatus.PENDING
        assert review.reviewers == frozenset({"UALICE", "UBOB"})
        assert review.approved_at is None
        assert review.approved_by is None
        assert review.created_at == NOW

    async def test_round_trip_by_key(self, store):
        await store.create_review(new_review())

        loaded = await store.get_by_correlation_key("1700000001.000100")

        assert loaded.pr_url == "https://github.com/acme/api/pull/42"
        assert loaded.channel_id == "CREVIEWS"
        assert loaded.team_id == "TACME"
        assert loaded.created_at == NOW

    async def test_duplicate_key_rejected_without_mutation(self, store):
        original = await store.create_review(new_review(reviewers=("UALICE",)))

        with pytest.raises(ValidationError):
            await store.create_review(new_review(
                reviewers=("UMALLORY",),
                pr_url="https://github.com/acme/other/pull/1",
            ))

        loaded = await store.get_by_correlation_key(original.correlation_key)
        assert loaded == original

    async def test_missing_key_raises(self, store):
        with pytest.raises(ReviewNotFoundError):
            await store.get_by_correlation_key("does-not-exist")


class TestAddReviewer:

    async def test_add_is_idempotent(self, store):
        await store.create_review(new_review(reviewers=("UALICE",)))

        assert await store.add_reviewer("1700000001.000100", "UBOB") is True
        assert await store.add_reviewer("1700000001.000100", "UBOB") is False

        loaded = await store.get_by_correlation_key("1700000001.000100")
        assert loaded.reviewers == frozenset({"UALICE", "UBOB"})

    async def test_concurrent_additions_are_not_lost(self, store):
        await store.create_review(new_review(reviewers=()))
        users = [f"U{i:03d}" for i in range(8)]

        await asyncio.gather(*(store.add_reviewer("1700000001.000100", u) for u in users))

        loaded = await store.get_by_correlation_key("1700000001.000100")
        assert loaded.reviewers == frozenset(users)

    async def test_concurrent_duplicate_additions(self, store):
        await store.create_review(new_review(reviewers=()))

        results = await asyncio.gather(
            *(store.add_reviewer("1700000001.000100", "UBOB") for _ in range(4))
        )

        assert results.count(True) == 1
        loaded = await store.get_by_correlation_key("1700000001.000100")
        assert loaded.reviewers == frozenset({"UBOB"})

    async def test_missing_review_raises(self, store):
        with pytest.raises(ReviewNotFoundError):
            await store.add_reviewer("does-not-exist", "UBOB")


class TestUpdateStatus:

    async def test_approve_pending(self, store):
        await store.create_review(new_review())
        at = NOW + timedelta(hours=5)

        changed = await store.update_status("1700000001.000100", ReviewStatus.APPROVED, "UCAROL", at)

        assert changed is True
        loaded = await store.get_by_correlation_key("1700000001.000100")
        assert loaded.status == ReviewStatus.APPROVED
        assert loaded.approved_by == "UCAROL"
        assert loaded.approved_at == at

    async def test_second_approval_does_not_overwrite(self, store):
        await store.create_review(new_review())
        first_at = NOW + timedelta(hours=5)
        await store.update_status("1700000001.000100", ReviewStatus.APPROVED, "UCAROL", first_at)

        changed = await store.update_status(
            "1700000001.000100", ReviewStatus.APPROVED, "UDAVE", first_at + timedelta(days=1)
        )

        assert changed is False
        loaded = await store.get_by_correlation_key("1700000001.000100")
        assert loaded.approved_by == "UCAROL"
        assert loaded.approved_at == first_at

    async def test_missing_review_raises(self, store):
        with pytest.raises(ReviewNotFoundError):
            await store.update_status("does-not-exist", ReviewStatus.APPROVED, "UCAROL", NOW)

    async def test_cannot_move_back_to_pending(self, store):
        await store.create_review(new_review())

        with pytest.raises(ValidationError):
            await store.update_status("1700000001.000100", ReviewStatus.PENDING, "UCAROL", NOW)


class TestListPending:

    async def test_only_pending_returned(self, store):
        await store.create_review(new_review("1.1", created_at=NOW))
        await store.create_review(new_review("2.2", created_at=NOW + timedelta(minutes=1)))
        await store.create_review(new_review("3.3", created_at=NOW + timedelta(minutes=2)))
        await store.update_status("2.2", ReviewStatus.APPROVED, "UCAROL", NOW + timedelta(hours=1))

        pending = await store.list_pending()

        assert [r.correlation_key for r in pending] == ["1.1", "3.3"]
        assert all(r.is_pending for r in pending)

    async def test_empty(self, store):
        assert await store.list_pending() == []


class TestWorkspaceStore:

    async def test_token_round_trip_encrypted(self, session_factory):
        settings = Settings(ENCRYPTION_KEY=Fernet.generate_key().decode())
        workspaces = SqlWorkspaceStore(session_factory, settings)

        await workspaces.save_workspace("TACME", "Acme", "xoxb-secret", "UBOT")

        assert await workspaces.resolve_credential("TACME") == "xoxb-secret"

    async def test_save_updates_existing(self, session_factory):
        workspaces = SqlWorkspaceStore(session_factory, Settings())

        await workspaces.save_workspace("TACME", "Acme", "xoxb-old", "UBOT")
        await workspaces.save_workspace("TACME", "Acme Inc", "xoxb-new", "UBOT")

        assert await workspaces.resolve_credential("TACME") == "xoxb-new"

    async def test_unknown_team(self, session_factory):
        workspaces = SqlWorkspaceStore(session_factory, Settings())

        with pytest.raises(WorkspaceNotFoundError):
            await workspaces.resolve_credential("TNOPE")

    async def test_undecryptable_token_is_a_store_error(self, session_factory):
        writer = SqlWorkspaceStore(session_factory, Settings(ENCRYPTION_KEY=Fernet.generate_key().decode()))
        reader = SqlWorkspaceStore(session_factory, Settings(ENCRYPTION_KEY=Fernet.generate_key().decode()))

        await writer.save_workspace("TACME", "Acme", "xoxb-secret", "UBOT")

        with pytest.raises(TransientStoreError):
            await reader.resolve_credential("TACME")
