"""
Approval Executor

Carries out the human decision on a pending follow-up:

- approve: send the follow-up through the CRM, then mark the record sent
- dismiss: mark the record dismissed

Only pending records can be decided. A record that is missing or already
closed yields ``None`` so the caller can answer the same way for both.
The send happens before the status change; if the send fails the record
stays pending and the error propagates.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Optional

from ..core.errors import AlreadyProcessedError, ChatError, NotFoundError
from ..core.models import FollowUpRecord, now_utc_iso
from ..core.observability import create_span
from ..core.store import FollowUpStore
from ..core.workflow import ACTION_TARGETS, FollowUpAction, FollowUpStatus
from ..integrations.base import CardOutcome, ChatNotifier, CRMClient

logger = logging.getLogger(__name__)


class ApprovalExecutor:
    """
    Applies approve/dismiss decisions to follow-up records.

    Decisions on the same follow-up are serialized with a per-id lock, and the
    store re-checks the status inside its write transaction, so two
    concurrent approvals never both send.

    Usage:
        executor = ApprovalExecutor(store, crm, notifier)
        record = await executor.approve(follow_up_id)
        if record is None:
            ...  # not found or already processed
    """

    def __init__(self, store: FollowUpStore, crm: CRMClient, notifier: Optional[ChatNotifier] = None):
        self._store = store
        self._crm = crm
        self._notifier = notifier
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, follow_up_id: str) -> asyncio.Lock:
        lock = self._locks.get(follow_up_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[follow_up_id] = lock
        return lock

    def _load_pending(self, follow_up_id: str) -> Optional[FollowUpRecord]:
        record = self._store.get_by_id(follow_up_id)
        if record is None:
            logger.info("Decision ignored, follow-up not found: id=%s", follow_up_id)
            return None
        if FollowUpStatus(record.status) != FollowUpStatus.PENDING:
            logger.info(
                "Decision ignored, follow-up already processed: id=%s status=%s",
                follow_up_id,
                FollowUpStatus(record.status).value,
            )
            return None
        return record

    async def _refresh_card(self, record: FollowUpRecord, outcome: CardOutcome) -> None:
        if not record.message_ref or self._notifier is None:
            return
        try:
            await self._notifier.update_card(record.message_ref, outcome, record.deal_name)
        except ChatError:
            # The record is already closed; a stale card is cosmetic.
            logger.warning("Failed to update approval card: id=%s ts=%s", record.id, record.message_ref, exc_info=True)

    def _close(self, follow_up_id: str, action: FollowUpAction, **fields) -> Optional[FollowUpRecord]:
        try:
            return self._store.transition(follow_up_id, ACTION_TARGETS[action], **fields)
        except (NotFoundError, AlreadyProcessedError) as e:
            logger.warning("Follow-up changed underneath decision: %s", e.message)
            return None

    async def approve(self, follow_up_id: str) -> Optional[FollowUpRecord]:
        """
        Send the follow-up and mark it sent.

        Returns:
            The updated record, or None if missing / not pending.

        Raises:
            CollaboratorError: the send failed; the record is unchanged.
        """
        async with self._lock_for(follow_up_id):
            with create_span("followup.approve", {"follow_up_id": follow_up_id}):
                record = self._load_pending(follow_up_id)
                if record is None:
                    return None

                await self._crm.send_follow_up(
                    record.contact_email,
                    record.draft_subject,
                    record.draft_body,
                    record.deal_id,
                )

                updated = self._close(follow_up_id, FollowUpAction.APPROVE, sent_at=now_utc_iso())
                if updated is None:
                    return None

                logger.info("Follow-up approved and sent: id=%s deal_id=%s", updated.id, updated.deal_id)
                await self._refresh_card(updated, "sent")
                return updated

    async def dismiss(self, follow_up_id: str) -> Optional[FollowUpRecord]:
        """Mark the follow-up dismissed. Returns None if missing / not pending."""
        async with self._lock_for(follow_up_id):
            with create_span("followup.dismiss", {"follow_up_id": follow_up_id}):
                record = self._load_pending(follow_up_id)
                if record is None:
                    return None

                updated = self._close(follow_up_id, FollowUpAction.DISMISS)
                if updated is None:
                    return None

                logger.info("Follow-up dismissed: id=%s deal_id=%s", updated.id, updated.deal_id)
                await self._refresh_card(updated, "dismissed")
                return updated

    async def decide(self, action: FollowUpAction, follow_up_id: str) -> Optional[FollowUpRecord]:
        if FollowUpAction(action) == FollowUpAction.APPROVE:
            return await self.approve(follow_up_id)
        return await self.dismiss(follow_up_id)
