"""API routes for the review reminder."""

from fastapi import APIRouter

from .slack import router as slack_router

# Main API router
api_router = APIRouter()

# Slack Events API and slash commands
api_router.include_router(slack_router)

__all__ = ["api_router"]
