"""
LLM Scoring & Drafting

Urgency scoring and follow-up email drafting over any OpenAI-compatible
chat completions endpoint, in JSON mode. Responses are validated with
pydantic before they reach the pipeline.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import CollaboratorError, DraftingError, ScoringError
from ..core.models import DealContext, EmailDraft, UrgencyLevel, UrgencyResult
from .base import EmailDrafter, UrgencyScorer

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


SCORING_SYSTEM_PROMPT = """You are a sales urgency scoring agent. Analyze the deal context and return a JSON object with:
- "score": one of "critical", "high", "medium", "low"
- "reason": a brief explanation (1-2 sentences) of why this urgency level was assigned

Scoring guidelines:
- critical: Deal amount > $50k AND stale > 5 days, OR close date is past/within 3 days
- high: Deal in negotiation/contract sent AND stale > threshold, OR amount > $20k stale > 3 days
- medium: Deal stale past threshold but earlier stage or lower amount
- low: Barely past threshold, early stage, no close date pressure"""

DRAFTING_SYSTEM_PROMPT = """You are a professional sales email writer. Draft a follow-up email for a stale deal.
Return a JSON object with "subject" and "body" fields.

Guidelines:
- Be warm, professional, and concise (under 150 words for body)
- Reference the deal context naturally without being pushy
- For critical/high urgency: more direct, reference timeline or next steps
- For medium/low urgency: softer check-in, offer value or ask open question
- If there's email history, reference previous conversation naturally
- Address the contact by first name
- Sign off with just the rep's name (will be filled in by the rep)
- Do NOT include placeholder brackets like [Your Name], end with a simple sign-off"""


class UrgencyReply(BaseModel):
    score: UrgencyLevel
    reason: str


class DraftReply(BaseModel):
    subject: str
    body: str


class OpenAIChatClient:
    """Minimal JSON-mode chat completions client."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout_ms: int = 60000,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout_ms / 1000)
        self._headers = {"Authorization": f"Bearer {api_key}"}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def complete_json(self, messages: List[Dict[str, str]], schema: Type[T]) -> T:
        """
        Run a JSON-mode completion and validate the result against ``schema``.

        Raises:
            CollaboratorError: transport failure, non-2xx status, or a reply
                that is not valid JSON for ``schema``.
        """
        start = time.monotonic()
        try:
            response = await self._client.post(
                "/chat/completions",
                headers=self._headers,
                json={
                    "model": self.model,
                    "response_format": {"type": "json_object"},
                    "messages": messages,
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CollaboratorError(f"completion returned {e.response.status_code}", service="llm") from e
        except httpx.HTTPError as e:
            raise CollaboratorError(f"completion failed: {type(e).__name__}", service="llm") from e

        latency_ms = int((time.monotonic() - start) * 1000)
        try:
            content = response.json()["choices"][0]["message"]["content"] or "{}"
            result = schema.model_validate(json.loads(content))
        except (KeyError, IndexError, TypeError, ValueError, PydanticValidationError) as e:
            raise CollaboratorError(f"invalid {schema.__name__} response: {e}", service="llm") from e

        logger.debug("LLM completion ok: model=%s schema=%s latency_ms=%d", self.model, schema.__name__, latency_ms)
        return result


def _deal_facts(deal: DealContext) -> Dict[str, Any]:
    return {
        "dealName": deal.deal_name,
        "stage": deal.deal_stage,
        "amount": deal.amount,
        "closeDate": deal.close_date,
        "daysSinceLastActivity": deal.days_since_last_activity,
        "contactName": deal.contact_name,
        "companyName": deal.company_name,
    }


def format_email_history(deal: DealContext) -> str:
    return "\n---\n".join(
        f"From: {e.sender}\nTo: {e.to}\nDate: {e.date}\nSubject: {e.subject}\n{e.body_preview}"
        for e in deal.recent_emails
    )


class LLMUrgencyScorer(UrgencyScorer):
    def __init__(self, chat: OpenAIChatClient):
        self._chat = chat

    async def score_urgency(self, deal: DealContext) -> UrgencyResult:
        payload = {**_deal_facts(deal), "recentEmailCount": len(deal.recent_emails)}
        messages = [
            {"role": "system", "content": SCORING_SYSTEM_PROMPT},
            {"role": "user", "content": json.dumps(payload)},
        ]
        try:
            reply = await self._chat.complete_json(messages, UrgencyReply)
        except CollaboratorError as e:
            raise ScoringError(f"deal {deal.deal_id}: {e.message}") from e
        return UrgencyResult(score=reply.score, reason=reply.reason)


class LLMEmailDrafter(EmailDrafter):
    def __init__(self, chat: OpenAIChatClient):
        self._chat = chat

    async def draft_email(self, deal: DealContext, urgency: UrgencyResult) -> EmailDraft:
        payload = {
            **_deal_facts(deal),
            "urgencyScore": urgency.score,
            "urgencyReason": urgency.reason,
            "emailHistory": format_email_history(deal) or "No previous emails found.",
        }
        messages = [
            {"role": "system", "content": DRAFTING_SYSTEM_PROMPT},
            {"role": "user", "content": json.dumps(payload)},
        ]
        try:
            reply = await self._chat.complete_json(messages, DraftReply)
        except CollaboratorError as e:
            raise DraftingError(f"deal {deal.deal_id}: {e.message}") from e
        return EmailDraft(subject=reply.subject, body=reply.body)
