"""
Slack Approval Cards

Posts the human-reviewable approval card for a follow-up and rewrites it in
place once the follow-up is sent or dismissed.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..core.errors import ChatError
from ..core.models import FollowUpRecord
from .base import CardOutcome, ChatNotifier

logger = logging.getLogger(__name__)

URGENCY_EMOJI: Dict[str, str] = {
    "critical": ":red_circle:",
    "high": ":large_orange_circle:",
    "medium": ":large_yellow_circle:",
    "low": ":white_circle:",
}

APPROVE_ACTION_ID = "approve_send"
DISMISS_ACTION_ID = "dismiss"


def build_card_blocks(record: FollowUpRecord) -> List[Dict[str, Any]]:
    emoji = URGENCY_EMOJI.get(record.urgency_score, ":white_circle:")
    return [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": record.deal_name, "emoji": True},
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Urgency:* {emoji} {record.urgency_score.upper()}"},
                {"type": "mrkdwn", "text": f"*Contact:* {record.contact_name}"},
                {"type": "mrkdwn", "text": f"*Email:* {record.contact_email}"},
                {"type": "mrkdwn", "text": f"*Owner:* {record.owner_email}"},
            ],
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*Why:* {record.urgency_reason}"},
        },
        {"type": "divider"},
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*Subject:* {record.draft_subject}\n\n{record.draft_body}"},
        },
        {"type": "divider"},
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Approve & Send", "emoji": True},
                    "style": "primary",
                    "action_id": APPROVE_ACTION_ID,
                    "value": record.id,
                },
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Dismiss", "emoji": True},
                    "style": "danger",
                    "action_id": DISMISS_ACTION_ID,
                    "value": record.id,
                },
            ],
        },
    ]


def outcome_text(outcome: CardOutcome, deal_name: str) -> str:
    if outcome == "sent":
        return f":white_check_mark: *Sent*: Follow-up email for *{deal_name}* has been sent."
    return f":x: *Dismissed*: Follow-up for *{deal_name}* was dismissed."


class SlackNotifier(ChatNotifier):
    """Slack Web API chat collaborator."""

    def __init__(
        self,
        bot_token: str,
        channel_id: str,
        *,
        base_url: str = "https://slack.com/api",
        timeout_ms: int = 15000,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.channel_id = channel_id
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout_ms / 1000)
        self._headers = {"Authorization": f"Bearer {bot_token}"}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(f"/{method}", headers=self._headers, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ChatError(f"{method} returned {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ChatError(f"{method} failed: {type(e).__name__}") from e

        if not data.get("ok"):
            raise ChatError(f"{method} error: {data.get('error', 'unknown_error')}")
        return data

    async def post_card(self, record: FollowUpRecord) -> str:
        data = await self._call("chat.postMessage", {
            "channel": self.channel_id,
            "text": f"Follow-up needed: {record.deal_name}",
            "blocks": build_card_blocks(record),
        })
        ts = data.get("ts") or ""
        logger.info("Posted approval card: follow_up_id=%s ts=%s", record.id, ts)
        return ts

    async def update_card(self, message_ref: str, outcome: CardOutcome, deal_name: str) -> None:
        text = outcome_text(outcome, deal_name)
        await self._call("chat.update", {
            "channel": self.channel_id,
            "ts": message_ref,
            "text": text,
            "blocks": [{"type": "section", "text": {"type": "mrkdwn", "text": text}}],
        })
        logger.info("Updated approval card: ts=%s outcome=%s", message_ref, outcome)
