"""
Drafting Stage

Writes a follow-up email for each scored deal, keeping the scoring order.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from ..core.models import DraftedDeal, EmailDraft, ScoredDeal
from ..core.observability import create_span
from ..integrations.base import EmailDrafter
from .options import PipelineOptions, run_per_item

logger = logging.getLogger(__name__)


class DraftingStage:
    def __init__(self, drafter: EmailDrafter, options: Optional[PipelineOptions] = None):
        self._drafter = drafter
        self._options = options or PipelineOptions()

    async def _draft_one(self, scored: ScoredDeal) -> EmailDraft:
        logger.info("[Draft] Drafting email for deal %s", scored.deal.deal_id)
        draft = await self._drafter.draft_email(scored.deal, scored.urgency)
        logger.info("[Draft] Draft generated for deal %s. Subject: %r", scored.deal.deal_id, draft.subject)
        return draft

    async def draft(self, scored_deals: Sequence[ScoredDeal]) -> Tuple[List[DraftedDeal], List[str]]:
        with create_span("pipeline.draft", {"deals": len(scored_deals)}):
            results, skipped = await run_per_item(
                scored_deals,
                self._draft_one,
                self._options,
                stage="Draft",
                key=lambda s: s.deal.deal_id,
            )
            drafted = [
                DraftedDeal(deal=scored.deal, urgency=scored.urgency, draft=draft)
                for scored, draft in results
            ]
            return drafted, skipped
