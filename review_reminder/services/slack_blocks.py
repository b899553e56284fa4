"""Slack Block Kit builders for review messages."""

REVIEW_REQUEST_FALLBACK_TEXT = "New PR Review Request"


class ReviewBlocks:
    """Block Kit layouts posted by the bot."""

    @staticmethod
    def announcement(pr_url: str, description: str) -> list[dict]:
        """Announcement posted when a review is submitted."""
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": "🔍 New PR Review Request",
                    "emoji": True,
                },
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*PR Link:* <{pr_url}>"},
            },
        ]

        if description:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Description:*\n{description}"},
            })

        blocks.extend([
            {"type": "divider"},
            {
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": "👀 = reviewing | ✅ = approved"},
                ],
            },
        ])
        return blocks

    @staticmethod
    def approval_text(approver_name: str) -> str:
        return f"✅ PR approved by {approver_name}"
