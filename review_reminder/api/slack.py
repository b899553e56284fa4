"""Slack endpoints: Events API and the /pr slash command."""

import json
import logging
import re
from dataclasses import dataclass, field
from urllib.parse import parse_qs

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PydanticValidationError

from ..core.dependencies import ReviewServiceDep, VerifiedBodyDep
from ..schemas import SlackCommandResponse, SlackEventEnvelope
from ..services.errors import NotFoundError, ReviewError, TransientGatewayError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])

# <@U123> or <@U123|display-name>
MENTION_PATTERN = re.compile(r"<@([A-Z0-9]+)(?:\|[^>]*)?>")

USAGE = "Usage: `/pr <pull-request-url> [@reviewer ...] [description]`"


@dataclass
class PRCommand:
    """Parsed text of a /pr command."""
    pr_url: str
    reviewer_ids: list[str] = field(default_factory=list)
    description: str = ""


def parse_pr_command(text: str) -> PRCommand | None:
    """
    Parse `/pr <url> [@reviewer ...] [description]`.

    Mentions may appear anywhere; everything that is neither the URL nor a
    mention becomes the description. Returns None when no URL is given.
    """
    reviewer_ids = list(dict.fromkeys(MENTION_PATTERN.findall(text)))
    remainder = MENTION_PATTERN.sub(" ", text).split()
    if not remainder:
        return None

    # Slack wraps links as <https://...> or <https://...|label>
    pr_url = remainder[0].strip("<>").split("|", 1)[0]
    if not pr_url.startswith(("http://", "https://")):
        return None

    return PRCommand(
        pr_url=pr_url,
        reviewer_ids=reviewer_ids,
        description=" ".join(remainder[1:]),
    )


# =============================================================================
# EVENTS
# =============================================================================


@router.post("/events")
async def handle_slack_events(
    body: VerifiedBodyDep,
    service: ReviewServiceDep,
):
    """
    Handle the Slack Events API.

    - url_verification: echo the challenge
    - reaction_added: 👀 adds a reviewer, ✅ approves
    """
    try:
        envelope = SlackEventEnvelope.model_validate(json.loads(body))
    except (ValueError, PydanticValidationError) as e:
        logger.error(f"Error parsing event body: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid event body"
        )

    if envelope.type == "url_verification":
        return PlainTextResponse(envelope.challenge or "")

    if envelope.type != "event_callback":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported event type: {envelope.type}"
        )

    event = envelope.event
    if event is None or event.type != "reaction_added" or event.item is None:
        return {"ok": True}

    try:
        outcome = await service.handle_reaction(
            team_id=envelope.team_id or "",
            reaction=event.reaction or "",
            user_id=event.user or "",
            channel_id=event.item.channel,
            key=event.item.ts,
        )
    except NotFoundError:
        # Reactions on messages that are not review announcements
        return {"ok": True}

    return {
        "ok": True,
        "signal": outcome.signal.value if outcome.signal else None,
        "changed": outcome.changed,
    }


# =============================================================================
# SLASH COMMAND
# =============================================================================


@router.post("/commands", response_model=SlackCommandResponse)
async def handle_slack_command(
    body: VerifiedBodyDep,
    service: ReviewServiceDep,
) -> SlackCommandResponse:
    """Handle `/pr`: announce a pull request and start tracking its review."""
    form = {k: v[0] for k, v in parse_qs(body.decode()).items()}

    command = parse_pr_command(form.get("text", "").strip())
    if command is None:
        return SlackCommandResponse(text=USAGE)

    try:
        review = await service.submit_review(
            pr_url=command.pr_url,
            description=command.description,
            channel_id=form.get("channel_id", ""),
            reviewer_ids=command.reviewer_ids,
            team_id=form.get("team_id", ""),
        )
    except ValidationError as e:
        return SlackCommandResponse(text=f":warning: {e}")
    except NotFoundError:
        return SlackCommandResponse(
            text=":warning: This Slack workspace is not connected. Please install the app first."
        )
    except TransientGatewayError as e:
        logger.error(f"Error posting message: {e}")
        return SlackCommandResponse(text=":warning: Could not post the review request. Please try again.")
    except ReviewError as e:
        logger.error(f"Error storing PR review: {e}")
        return SlackCommandResponse(text=":warning: The review request could not be saved.")

    return SlackCommandResponse(text=f"Review requested for {review.pr_url}")
