"""
Service wiring.

Collaborators are constructed once per process and handed to the routes
through ``app.state.services``; tests build a ``Services`` with doubles.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List

from fastapi import Request

from ..core.config import Settings
from ..core.store import FollowUpStore
from ..hitl.approval import ApprovalExecutor
from ..hitl.verify import SignatureVerifier
from ..integrations.hubspot import HubSpotCRM
from ..integrations.llm import LLMEmailDrafter, LLMUrgencyScorer, OpenAIChatClient
from ..integrations.slack import SlackNotifier
from ..pipeline.options import PipelineOptions
from ..pipeline.orchestrator import FollowUpPipeline, build_pipeline

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: FollowUpStore
    verifier: SignatureVerifier
    pipeline: FollowUpPipeline
    executor: ApprovalExecutor
    closers: List[Callable[[], Awaitable[Any]]] = field(default_factory=list)

    async def aclose(self) -> None:
        for close in self.closers:
            await close()


def build_services(settings: Settings) -> Services:
    """Construct the production collaborators from validated settings."""
    store = FollowUpStore(settings.DB_PATH)
    crm = HubSpotCRM(
        settings.HUBSPOT_ACCESS_TOKEN,
        base_url=settings.HUBSPOT_API_BASE,
        timeout_ms=settings.HUBSPOT_TIMEOUT_MS,
    )
    chat = OpenAIChatClient(
        settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_API_BASE,
        model=settings.LLM_MODEL,
        timeout_ms=settings.LLM_TIMEOUT_MS,
    )
    notifier = SlackNotifier(
        settings.SLACK_BOT_TOKEN,
        settings.SLACK_CHANNEL_ID,
        base_url=settings.SLACK_API_BASE,
    )
    options = PipelineOptions(
        on_item_error=settings.PIPELINE_ON_ITEM_ERROR,
        concurrency=settings.PIPELINE_CONCURRENCY,
    )

    pipeline = build_pipeline(
        crm,
        LLMUrgencyScorer(chat),
        LLMEmailDrafter(chat),
        notifier,
        store,
        settings.STALENESS_THRESHOLDS,
        options=options,
        recent_email_limit=settings.RECENT_EMAIL_LIMIT,
    )
    logger.info("Services built: db=%s channel=%s", settings.DB_PATH, settings.SLACK_CHANNEL_ID)
    return Services(
        store=store,
        verifier=SignatureVerifier(settings.SLACK_SIGNING_SECRET),
        pipeline=pipeline,
        executor=ApprovalExecutor(store, crm, notifier),
        closers=[crm.aclose, chat.aclose, notifier.aclose],
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
