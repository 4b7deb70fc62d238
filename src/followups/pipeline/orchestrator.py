"""
Pipeline Orchestrator

Runs detect -> score -> draft -> notify in order. An empty detection result
short-circuits the run. A stage failure aborts the run and propagates;
records already persisted by the notification stage stay persisted.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.models import PipelineResult
from ..core.observability import create_span
from .detect import DetectionStage
from .draft import DraftingStage
from .notify import NotificationStage
from .score import ScoringStage

logger = logging.getLogger(__name__)


class FollowUpPipeline:
    """
    Usage:
        pipeline = FollowUpPipeline(detection, scoring, drafting, notification)
        result = await pipeline.run()
    """

    def __init__(
        self,
        detection: DetectionStage,
        scoring: ScoringStage,
        drafting: DraftingStage,
        notification: NotificationStage,
    ):
        self.detection = detection
        self.scoring = scoring
        self.drafting = drafting
        self.notification = notification

    async def run(self) -> PipelineResult:
        with create_span("pipeline.run") as span:
            logger.info("[Pipeline] Step 1: Detecting stale deals")
            stale = await self.detection.detect()
            if not stale:
                logger.info("[Pipeline] No stale deals found. Exiting early")
                return PipelineResult()

            logger.info("[Pipeline] Step 2: Scoring urgency for %d deals", len(stale))
            scored, score_skipped = await self.scoring.score(stale)

            logger.info("[Pipeline] Step 3: Drafting emails for %d deals", len(scored))
            drafted, draft_skipped = await self.drafting.draft(scored)

            logger.info("[Pipeline] Step 4: Notifying for %d deals", len(drafted))
            records, notify_skipped = await self.notification.notify(drafted)

            skipped = score_skipped + draft_skipped + notify_skipped
            span.set_attribute("deals.stale", len(stale))
            span.set_attribute("records.created", len(records))
            logger.info(
                "[Pipeline] Complete. Found %d, created %d, skipped %d",
                len(stale),
                len(records),
                len(skipped),
            )
            return PipelineResult(
                stale_deals_found=len(stale),
                follow_ups_created=len(records),
                records=records,
                skipped=skipped,
            )


def build_pipeline(
    crm,
    scorer,
    drafter,
    notifier,
    store,
    thresholds,
    *,
    options=None,
    recent_email_limit: int = 3,
) -> FollowUpPipeline:
    """Wire the four stages from their collaborators."""
    return FollowUpPipeline(
        DetectionStage(crm, store, thresholds, recent_email_limit=recent_email_limit),
        ScoringStage(scorer, options),
        DraftingStage(drafter, options),
        NotificationStage(notifier, store),
    )
