"""
Collaborator Interfaces

Narrow contracts the pipeline and approval executor depend on. Concrete
implementations talk to HubSpot, an OpenAI-compatible LLM and Slack; tests
substitute in-memory doubles.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from typing_extensions import Literal

from ..core.models import Contact, Deal, DealContext, EmailDraft, EmailSummary, FollowUpRecord, UrgencyResult


CardOutcome = Literal["sent", "dismissed"]


class CRMClient(ABC):
    """Deal/contact/email retrieval and note creation."""

    @abstractmethod
    async def list_open_deals(self) -> List[Deal]:
        ...

    @abstractmethod
    async def get_contact(self, deal_id: str) -> Optional[Contact]:
        ...

    @abstractmethod
    async def get_recent_emails(self, deal_id: str, limit: int = 3) -> List[EmailSummary]:
        """Most recent emails associated with the deal, newest first."""

    @abstractmethod
    async def get_owner_email(self, owner_id: str) -> str:
        """Raises EntityLookupError when the owner cannot be resolved."""

    @abstractmethod
    async def create_note(self, deal_id: str, text: str) -> None:
        ...

    async def send_follow_up(self, contact_email: str, subject: str, body: str, deal_id: str) -> None:
        """
        Send side effect for an approved follow-up.

        Logged as a note on the deal's activity timeline rather than sent as
        a real email.
        """
        note = f"[Follow-Up Draft — Approved]\nTo: {contact_email}\nSubject: {subject}\n\n{body}"
        await self.create_note(deal_id, note)


class UrgencyScorer(ABC):
    @abstractmethod
    async def score_urgency(self, deal: DealContext) -> UrgencyResult:
        """Raises ScoringError on failure."""


class EmailDrafter(ABC):
    @abstractmethod
    async def draft_email(self, deal: DealContext, urgency: UrgencyResult) -> EmailDraft:
        """Raises DraftingError on failure."""


class ChatNotifier(ABC):
    @abstractmethod
    async def post_card(self, record: FollowUpRecord) -> str:
        """Post an approval card; returns the message reference."""

    @abstractmethod
    async def update_card(self, message_ref: str, outcome: CardOutcome, deal_name: str) -> None:
        ...
