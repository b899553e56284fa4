"""SQLAlchemy ORM Models for the review reminder."""

from .base import Base, CreatedAtMixin, IntegerIDMixin
from .models import (
    # Enums
    ReviewStatus,
    # Reviews
    PRReview,
    PRReviewer,
    # Workspaces
    Workspace,
)

__all__ = [
    # Base
    "Base",
    "IntegerIDMixin",
    "CreatedAtMixin",
    # Enums
    "ReviewStatus",
    # Reviews
    "PRReview",
    "PRReviewer",
    # Workspaces
    "Workspace",
]
