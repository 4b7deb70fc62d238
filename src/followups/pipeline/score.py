"""
Scoring Stage

Classifies each stale deal's urgency and orders the batch most urgent first.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from ..core.models import URGENCY_ORDER, DealContext, ScoredDeal, UrgencyResult
from ..core.observability import create_span
from ..integrations.base import UrgencyScorer
from .options import PipelineOptions, run_per_item

logger = logging.getLogger(__name__)


def sort_by_urgency(scored: List[ScoredDeal]) -> List[ScoredDeal]:
    """critical < high < medium < low; ties keep their detection order."""
    return sorted(scored, key=lambda s: URGENCY_ORDER[s.urgency.score])


class ScoringStage:
    def __init__(self, scorer: UrgencyScorer, options: Optional[PipelineOptions] = None):
        self._scorer = scorer
        self._options = options or PipelineOptions()

    async def _score_one(self, deal: DealContext) -> UrgencyResult:
        logger.info("[Score] Scoring deal %s (%s)", deal.deal_id, deal.deal_name)
        urgency = await self._scorer.score_urgency(deal)
        logger.info("[Score] Deal %s scored as %s", deal.deal_id, urgency.score)
        return urgency

    async def score(self, deals: Sequence[DealContext]) -> Tuple[List[ScoredDeal], List[str]]:
        """Returns the scored deals most urgent first and the ids skipped on error."""
        with create_span("pipeline.score", {"deals": len(deals)}):
            results, skipped = await run_per_item(
                deals,
                self._score_one,
                self._options,
                stage="Score",
                key=lambda d: d.deal_id,
            )
            scored = [ScoredDeal(deal=deal, urgency=urgency) for deal, urgency in results]
            return sort_by_urgency(scored), skipped
