"""
Notification Stage

Posts an approval card for each drafted deal and persists the pending
follow-up. Records are handled one at a time so store writes stay ordered.
If persisting fails after the card was posted the card is left in the
channel without a record behind it; there is no rollback.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from ..core.errors import DuplicatePendingError
from ..core.models import DraftedDeal, FollowUpRecord
from ..core.observability import create_span
from ..core.store import FollowUpStore
from ..integrations.base import ChatNotifier

logger = logging.getLogger(__name__)


class NotificationStage:
    def __init__(self, notifier: ChatNotifier, store: FollowUpStore):
        self._notifier = notifier
        self._store = store

    async def notify(self, drafted_deals: Sequence[DraftedDeal]) -> Tuple[List[FollowUpRecord], List[str]]:
        with create_span("pipeline.notify", {"deals": len(drafted_deals)}) as span:
            records: List[FollowUpRecord] = []
            skipped: List[str] = []

            for drafted in drafted_deals:
                record = FollowUpRecord.from_drafted(drafted)
                logger.info("[Notify] Posting card for follow-up %s (deal %s)", record.id, record.deal_id)
                record.message_ref = await self._notifier.post_card(record)

                try:
                    self._store.create(record)
                except DuplicatePendingError as e:
                    logger.warning("[Notify] %s; card %s left orphaned", e.message, record.message_ref)
                    skipped.append(record.deal_id)
                    continue
                records.append(record)

            span.set_attribute("records.created", len(records))
            logger.info("[Notify] Completed notifications. %d records saved", len(records))
            return records, skipped
