"""
Tests for the Review State Machine.

These tests verify:
1. Reviewer addition is idempotent and allowed in any state
2. Approval is monotonic: PENDING -> APPROVED, never back
3. Approval fields are present exactly when approved
4. Reaction names map to a fixed set of signals
"""

from datetime import timedelta

import pytest

from review_reminder.models import ReviewStatus
from review_reminder.services.review_state import ReviewSignal, add_reviewer, approve

from .conftest import NOW, make_review


class TestAddReviewer:
    """Tests for add_reviewer."""

    def test_adds_new_reviewer(self):
        review = make_review(reviewers={"UALICE"})

        updated = add_reviewer(review, "UBOB")

        assert updated.reviewers == frozenset({"UALICE", "UBOB"})
        assert review.reviewers == frozenset({"UALICE"})  # original untouched

    def test_adding_twice_equals_adding_once(self):
        review = make_review(reviewers={"UALICE"})

        once = add_reviewer(review, "UBOB")
        twice = add_reviewer(once, "UBOB")

        assert twice.reviewers == once.reviewers
        assert twice is once

    def test_existing_reviewer_is_noop(self):
        review = make_review(reviewers={"UALICE"})

        assert add_reviewer(review, "UALICE") is review

    def test_allowed_on_approved_review(self):
        review = make_review(status=ReviewStatus.APPROVED, reviewers=set())

        updated = add_reviewer(review, "UDAVE")

        assert updated.reviewers == frozenset({"UDAVE"})
        assert updated.status == ReviewStatus.APPROVED
        assert updated.approved_by == review.approved_by


class TestApprove:
    """Tests for approve."""

    def test_pending_becomes_approved(self):
        review = make_review()
        at = NOW + timedelta(hours=3)

        approved = approve(review, "UCAROL", at)

        assert approved.status == ReviewStatus.APPROVED
        assert approved.approved_by == "UCAROL"
        assert approved.approved_at == at
        assert not approved.is_pending

    def test_reapproval_keeps_first_approver(self):
        first_at = NOW + timedelta(hours=1)
        approved = approve(make_review(), "UCAROL", first_at)

        again = approve(approved, "UDAVE", first_at + timedelta(days=2))

        assert again is approved
        assert again.approved_by == "UCAROL"
        assert again.approved_at == first_at

    def test_approval_preserves_reviewers(self):
        review = make_review(reviewers={"UALICE", "UBOB"})

        approved = approve(review, "UCAROL", NOW)

        assert approved.reviewers == review.reviewers


class TestApprovalCompleteness:
    """approved_at/approved_by are set exactly when the status is APPROVED."""

    def test_pending_with_approver_is_rejected(self):
        with pytest.raises(ValueError):
            make_review(approved_by="UCAROL", approved_at=NOW)

    def test_pending_with_only_time_is_rejected(self):
        with pytest.raises(ValueError):
            make_review(approved_at=NOW)

    def test_approved_without_approver_is_rejected(self):
        with pytest.raises(ValueError):
            make_review(status=ReviewStatus.APPROVED, approved_by=None, approved_at=NOW)

    def test_valid_states(self):
        pending = make_review()
        approved = make_review(status=ReviewStatus.APPROVED)

        assert pending.approved_at is None and pending.approved_by is None
        assert approved.approved_at is not None and approved.approved_by is not None


class TestReviewSignal:
    """Tests for reaction -> signal mapping."""

    def test_known_reactions(self):
        assert ReviewSignal.from_reaction("eyes") == ReviewSignal.WATCHING
        assert ReviewSignal.from_reaction("white_check_mark") == ReviewSignal.APPROVED

    @pytest.mark.parametrize("reaction", ["thumbsup", "", "EYES", "heavy_check_mark"])
    def test_unknown_reactions(self, reaction):
        assert ReviewSignal.from_reaction(reaction) is None
