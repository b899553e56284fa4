"""Business logic services for the review reminder."""

from .engagement import EngagementResolver, ReactionEngagementResolver
from .errors import (
    NotFoundError,
    ReviewError,
    ReviewNotFoundError,
    TransientGatewayError,
    TransientStoreError,
    ValidationError,
    WorkspaceNotFoundError,
)
from .escalation_policy import Escalation, EscalationPolicy, EscalationTier
from .reminder_dispatcher import ReminderDispatcher, compose_reminder
from .review_service import ReactionOutcome, ReviewService
from .review_state import Review, ReviewSignal, add_reviewer, approve
from .review_store import NewReview, ReviewStore, SqlReviewStore, SqlWorkspaceStore
from .slack_gateway import SlackGateway

__all__ = [
    # Errors
    "ReviewError",
    "NotFoundError",
    "ReviewNotFoundError",
    "WorkspaceNotFoundError",
    "ValidationError",
    "TransientGatewayError",
    "TransientStoreError",
    # State machine
    "Review",
    "ReviewSignal",
    "add_reviewer",
    "approve",
    # Store
    "NewReview",
    "ReviewStore",
    "SqlReviewStore",
    "SqlWorkspaceStore",
    # Escalation
    "EscalationPolicy",
    "EscalationTier",
    "Escalation",
    "EngagementResolver",
    "ReactionEngagementResolver",
    "ReminderDispatcher",
    "compose_reminder",
    # Slack
    "SlackGateway",
    "ReviewService",
    "ReactionOutcome",
]
