"""Exceptions raised by review tracking and reminder delivery."""


class ReviewError(Exception):
    """Base exception for review operations."""
    pass


class NotFoundError(ReviewError):
    """Referenced entity does not exist."""
    pass


class ReviewNotFoundError(NotFoundError):
    """No review is keyed by the given correlation key."""

    def __init__(self, correlation_key: str):
        super().__init__(f"Review {correlation_key} not found")
        self.correlation_key = correlation_key


class WorkspaceNotFoundError(NotFoundError):
    """No installed workspace for the given team."""

    def __init__(self, team_id: str):
        super().__init__(f"Workspace {team_id} not found")
        self.team_id = team_id


class ValidationError(ReviewError):
    """Malformed input or duplicate correlation key."""
    pass


class TransientGatewayError(ReviewError):
    """Slack call failed; may succeed if tried again later."""
    pass


class TransientStoreError(ReviewError):
    """Persistence failure; may succeed if tried again later."""
    pass
