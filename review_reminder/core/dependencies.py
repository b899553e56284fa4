"""FastAPI dependencies for Slack request verification and service access."""

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from ..services.review_service import ReviewService
from .config import Settings, get_settings
from .security import verify_slack_signature

logger = logging.getLogger(__name__)


SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_review_service(request: Request) -> ReviewService:
    """The review service created during application startup."""
    service = getattr(request.app.state, "review_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Review service is not ready"
        )
    return service


ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]


async def verify_slack_request(
    request: Request,
    settings: SettingsDep,
    x_slack_signature: Annotated[str | None, Header()] = None,
    x_slack_request_timestamp: Annotated[str | None, Header()] = None,
) -> bytes:
    """
    Check the Slack signature and return the raw body.

    Verification is skipped only in development without a signing secret.
    """
    body = await request.body()

    if settings.environment == "development" and not settings.slack_signing_secret:
        return body

    if not x_slack_signature or not x_slack_request_timestamp:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Slack signature headers"
        )

    if not verify_slack_signature(
        body,
        x_slack_request_timestamp,
        x_slack_signature,
        settings.slack_signing_secret,
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Slack signature"
        )

    return body


VerifiedBodyDep = Annotated[bytes, Depends(verify_slack_request)]
