"""Pydantic schemas for Slack requests and API responses."""

from .slack import (
    ErrorResponse,
    ReactionItem,
    SlackCommandResponse,
    SlackEvent,
    SlackEventEnvelope,
)

__all__ = [
    "ErrorResponse",
    "ReactionItem",
    "SlackCommandResponse",
    "SlackEvent",
    "SlackEventEnvelope",
]
