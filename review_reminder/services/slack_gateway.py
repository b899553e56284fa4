"""Slack Web API gateway.

Thin async wrapper over the handful of Slack methods the bot needs:
- chat.postMessage: announcements, reminders, approval confirmations
- reactions.get: who is watching a review
- users.info: display names for confirmations

Every call is made with the bot token of the workspace the review belongs
to. Network errors and `ok: false` responses surface as
TransientGatewayError.
"""

import logging
from typing import Any

import httpx

from .errors import TransientGatewayError
from .review_store import CredentialResolver

logger = logging.getLogger(__name__)

SLACK_API_BASE_URL = "https://slack.com/api"


class SlackGateway:
    """Messaging gateway backed by the Slack Web API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        credentials: CredentialResolver,
        base_url: str = SLACK_API_BASE_URL,
    ):
        self.http_client = http_client
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")

    async def resolve_credential(self, team_id: str) -> str:
        """Bot token for a workspace. Store errors propagate unchanged."""
        return await self.credentials.resolve_credential(team_id)

    async def post_message(
        self,
        team_id: str,
        channel: str,
        text: str,
        thread_ts: str | None = None,
        blocks: list[dict] | None = None,
    ) -> str:
        """Post a message, threaded under `thread_ts` if given. Returns the message ts."""
        payload: dict[str, Any] = {
            "channel": channel,
            "text": text,  # Fallback text
        }
        if blocks:
            payload["blocks"] = blocks
        if thread_ts:
            payload["thread_ts"] = thread_ts

        data = await self._call(team_id, "POST", "chat.postMessage", json=payload)
        return data["ts"]

    async def get_reaction_users(
        self,
        team_id: str,
        channel: str,
        ts: str,
        reaction: str,
    ) -> frozenset[str]:
        """Users who reacted to a message with the given reaction name."""
        data = await self._call(
            team_id,
            "GET",
            "reactions.get",
            params={"channel": channel, "timestamp": ts, "full": "true"},
        )

        users: set[str] = set()
        for item in data.get("message", {}).get("reactions", []):
            if item.get("name") == reaction:
                users.update(item.get("users", []))
        return frozenset(users)

    async def get_user_name(self, team_id: str, user_id: str) -> str:
        """Real name of a Slack user, falling back to the user id."""
        data = await self._call(team_id, "GET", "users.info", params={"user": user_id})
        user = data.get("user", {})
        return (
            user.get("real_name")
            or user.get("profile", {}).get("real_name")
            or user.get("name")
            or user_id
        )

    async def _call(
        self,
        team_id: str,
        http_method: str,
        api_method: str,
        **kwargs: Any,
    ) -> dict:
        token = await self.resolve_credential(team_id)

        try:
            response = await self.http_client.request(
                http_method,
                f"{self.base_url}/{api_method}",
                headers={"Authorization": f"Bearer {token}"},
                **kwargs,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransientGatewayError(f"Slack {api_method} failed: {e}") from e

        if not data.get("ok"):
            logger.error(f"Slack API error: {data.get('error')} for team {team_id}")
            raise TransientGatewayError(f"Slack {api_method} error: {data.get('error')}")

        return data
