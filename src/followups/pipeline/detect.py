"""
Detection Stage

Finds open deals that have gone quiet for at least their stage's staleness
threshold and that do not already have a pending follow-up.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..core.errors import EntityLookupError
from ..core.models import FALLBACK_OWNER_EMAIL, Deal, DealContext, EmailSummary, now_utc, parse_timestamp
from ..core.observability import create_span
from ..core.store import FollowUpStore
from ..integrations.base import CRMClient

logger = logging.getLogger(__name__)

DEFAULT_STAGE = "default"


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days from ``earlier`` to ``later``, never negative."""
    return max(0, math.floor((later - earlier).total_seconds() / 86400))


def last_activity(emails: List[EmailSummary], deal: Deal) -> Optional[datetime]:
    """The more recent of the newest associated email and the CRM last-modified date."""
    candidates = [parse_timestamp(e.date) for e in emails]
    candidates.append(parse_timestamp(deal.last_modified))
    dates = [d for d in candidates if d is not None]
    return max(dates) if dates else None


class DetectionStage:
    def __init__(
        self,
        crm: CRMClient,
        store: FollowUpStore,
        thresholds: Dict[str, int],
        *,
        recent_email_limit: int = 3,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._crm = crm
        self._store = store
        self._thresholds = {k.lower(): v for k, v in thresholds.items()}
        self._thresholds.setdefault(DEFAULT_STAGE, 0)
        self._recent_email_limit = recent_email_limit
        self._clock = clock

    def threshold_for(self, stage: Optional[str]) -> int:
        return self._thresholds.get((stage or DEFAULT_STAGE).lower(), self._thresholds[DEFAULT_STAGE])

    async def _owner_email(self, deal: Deal) -> str:
        if not deal.owner_id:
            return FALLBACK_OWNER_EMAIL
        try:
            return await self._crm.get_owner_email(deal.owner_id)
        except EntityLookupError:
            logger.warning("Could not fetch owner for deal %s, using fallback", deal.id)
            return FALLBACK_OWNER_EMAIL

    async def detect(self) -> List[DealContext]:
        with create_span("pipeline.detect") as span:
            deals = await self._crm.list_open_deals()
            logger.info("[Detect] Analyzing staleness of %d open deals", len(deals))
            now = self._clock()
            stale: List[DealContext] = []

            for deal in deals:
                context = await self._evaluate(deal, now)
                if context is not None:
                    stale.append(context)

            span.set_attribute("deals.open", len(deals))
            span.set_attribute("deals.stale", len(stale))
            logger.info("[Detect] Found %d stale deals", len(stale))
            return stale

    async def _evaluate(self, deal: Deal, now: datetime) -> Optional[DealContext]:
        if self._store.get_pending_by_deal(deal.id) is not None:
            logger.debug("[Detect] Deal %s already has a pending follow-up", deal.id)
            return None

        stage = deal.stage or DEFAULT_STAGE
        threshold = self.threshold_for(stage)

        emails = await self._crm.get_recent_emails(deal.id, self._recent_email_limit)
        activity = last_activity(emails, deal)
        days_since = days_between(activity, now) if activity else 0
        if days_since < threshold:
            return None

        contact = await self._crm.get_contact(deal.id)
        if contact is None or not contact.email:
            logger.info("[Detect] Deal %s has no contact email, skipping", deal.id)
            return None

        return DealContext(
            deal_id=deal.id,
            deal_name=deal.name or "Unnamed Deal",
            deal_stage=stage,
            amount=deal.amount if deal.amount is None or deal.amount >= 0 else None,
            close_date=deal.close_date,
            owner_email=await self._owner_email(deal),
            contact_name=contact.full_name,
            contact_email=contact.email,
            company_name=contact.company,
            days_since_last_activity=days_since,
            recent_emails=emails[: self._recent_email_limit],
            notes=[],
        )
