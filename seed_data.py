#!/usr/bin/env python3
"""
Seed Data Script for the PR Review Reminder

Registers a Slack workspace so the bot can post in it:
- Creates the tables if needed
- Stores (or updates) the workspace's bot token, encrypted when
  ENCRYPTION_KEY is set

Run with:
    python seed_data.py --team-id T0123 --team-name "Acme" \\
        --bot-token xoxb-... --bot-user-id U0BOT

Each option falls back to SLACK_TEAM_ID, SLACK_TEAM_NAME, SLACK_BOT_TOKEN
and SLACK_BOT_USER_ID.
"""

import argparse
import asyncio
import os

from review_reminder.core import get_settings
from review_reminder.core.database import build_engine, build_session_factory, init_db
from review_reminder.services.review_store import SqlWorkspaceStore


async def seed_workspace(team_id: str, team_name: str, bot_token: str, bot_user_id: str) -> None:
    settings = get_settings()
    engine = build_engine(settings.database_url_async, echo=settings.database_echo)

    try:
        await init_db(engine)
        store = SqlWorkspaceStore(build_session_factory(engine), settings)
        await store.save_workspace(
            team_id=team_id,
            team_name=team_name,
            access_token=bot_token,
            bot_user_id=bot_user_id,
        )
    finally:
        await engine.dispose()

    print(f"Workspace {team_id} ({team_name}) registered")
    if not settings.encryption_enabled:
        print("Warning: ENCRYPTION_KEY not set - the bot token is stored in plaintext")


def main():
    parser = argparse.ArgumentParser(description="Register a Slack workspace for the review reminder")
    parser.add_argument("--team-id", default=os.environ.get("SLACK_TEAM_ID"))
    parser.add_argument("--team-name", default=os.environ.get("SLACK_TEAM_NAME", "Slack workspace"))
    parser.add_argument("--bot-token", default=os.environ.get("SLACK_BOT_TOKEN"))
    parser.add_argument("--bot-user-id", default=os.environ.get("SLACK_BOT_USER_ID", ""))
    args = parser.parse_args()

    if not args.team_id or not args.bot_token:
        print("Error: --team-id and --bot-token (or SLACK_TEAM_ID / SLACK_BOT_TOKEN) are required")
        exit(1)

    asyncio.run(seed_workspace(args.team_id, args.team_name, args.bot_token, args.bot_user_id))


if __name__ == "__main__":
    main()
