"""Schemas for Slack payloads and API responses."""

from pydantic import BaseModel, ConfigDict


class SlackBaseModel(BaseModel):
    """Slack sends many fields we do not use; keep them out of the way."""

    model_config = ConfigDict(extra="ignore")


# =============================================================================
# EVENTS API
# =============================================================================


class ReactionItem(SlackBaseModel):
    type: str = "message"
    channel: str = ""
    ts: str = ""


class SlackEvent(SlackBaseModel):
    type: str
    user: str | None = None
    reaction: str | None = None
    item: ReactionItem | None = None


class SlackEventEnvelope(SlackBaseModel):
    """Outer body of an Events API request."""

    type: str
    token: str | None = None
    challenge: str | None = None
    team_id: str | None = None
    event: SlackEvent | None = None


# =============================================================================
# SLASH COMMANDS
# =============================================================================


class SlackCommandResponse(BaseModel):
    """Response for Slack slash command."""

    response_type: str = "ephemeral"  # or "in_channel"
    text: str


# =============================================================================
# ERRORS
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: str
