"""
Shared Test Fixtures

In-memory collaborators for the CRM, scorer, drafter and chat notifier, a
temporary record store, and an ASGI client wired to them.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import pytest
from httpx import ASGITransport, AsyncClient

from followups.api.dependencies import Services
from followups.api.main import create_app
from followups.core.config import DEFAULT_STALENESS_THRESHOLDS
from followups.core.errors import ChatError, CRMError, DraftingError, EntityLookupError, ScoringError
from followups.core.models import (
    Contact,
    Deal,
    DealContext,
    EmailDraft,
    EmailSummary,
    FollowUpRecord,
    UrgencyResult,
)
from followups.core.store import FollowUpStore
from followups.hitl.approval import ApprovalExecutor
from followups.hitl.verify import SignatureVerifier
from followups.integrations.base import ChatNotifier, CRMClient, EmailDrafter, UrgencyScorer
from followups.pipeline.detect import DetectionStage
from followups.pipeline.draft import DraftingStage
from followups.pipeline.notify import NotificationStage
from followups.pipeline.options import PipelineOptions
from followups.pipeline.orchestrator import FollowUpPipeline
from followups.pipeline.score import ScoringStage

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
FIXED_TS = int(NOW.timestamp())
SIGNING_SECRET = "test-signing-secret"


def iso_days_ago(days: float) -> str:
    return (NOW - timedelta(days=days)).isoformat().replace("+00:00", "Z")


def make_deal(deal_id: str, stage: str = "discovery", days_ago: float = 10, **kwargs) -> Deal:
    return Deal(
        id=deal_id,
        name=kwargs.pop("name", f"Deal {deal_id}"),
        stage=stage,
        last_modified=iso_days_ago(days_ago),
        **kwargs,
    )


def make_context(deal_id: str = "d1", **kwargs) -> DealContext:
    data = {
        "deal_id": deal_id,
        "deal_name": f"Deal {deal_id}",
        "deal_stage": "discovery",
        "owner_email": "owner@example.com",
        "contact_name": "Jane Doe",
        "contact_email": f"jane+{deal_id}@example.com",
        "days_since_last_activity": 10,
    }
    data.update(kwargs)
    return DealContext(**data)


def make_record(deal_id: str = "d1", **kwargs) -> FollowUpRecord:
    data = {
        "deal_id": deal_id,
        "deal_name": f"Deal {deal_id}",
        "contact_email": f"jane+{deal_id}@example.com",
        "contact_name": "Jane Doe",
        "owner_email": "owner@example.com",
        "urgency_score": "high",
        "urgency_reason": "Quiet for ten days",
        "draft_subject": "Checking in",
        "draft_body": "Hi Jane, just checking in.",
    }
    data.update(kwargs)
    return FollowUpRecord(**data)


class FakeCRM(CRMClient):
    def __init__(self):
        self.deals: List[Deal] = []
        self.contacts: Dict[str, Contact] = {}
        self.emails: Dict[str, List[EmailSummary]] = {}
        self.owners: Dict[str, str] = {}
        self.notes: List[Dict[str, str]] = []
        self.fail_send = False
        self.contact_calls: List[str] = []

    def add_deal(self, deal: Deal, email: Optional[str] = "jane@example.com", emails=None) -> Deal:
        self.deals.append(deal)
        if email is not None:
            self.contacts[deal.id] = Contact(
                id=f"c-{deal.id}", email=email, first_name="Jane", last_name="Doe", company="Acme"
            )
        self.emails[deal.id] = list(emails or [])
        return deal

    async def list_open_deals(self) -> List[Deal]:
        return list(self.deals)

    async def get_contact(self, deal_id: str) -> Optional[Contact]:
        self.contact_calls.append(deal_id)
        return self.contacts.get(deal_id)

    async def get_recent_emails(self, deal_id: str, limit: int = 3) -> List[EmailSummary]:
        return self.emails.get(deal_id, [])[:limit]

    async def get_owner_email(self, owner_id: str) -> str:
        if owner_id not in self.owners:
            raise EntityLookupError("owner", owner_id)
        return self.owners[owner_id]

    async def create_note(self, deal_id: str, text: str) -> None:
        if self.fail_send:
            raise CRMError("POST /crm/v3/objects/notes returned 503")
        self.notes.append({"deal_id": deal_id, "text": text})


class FakeScorer(UrgencyScorer):
    def __init__(self):
        self.scores: Dict[str, str] = {}
        self.failing: Set[str] = set()
        self.calls: List[str] = []

    async def score_urgency(self, deal: DealContext) -> UrgencyResult:
        self.calls.append(deal.deal_id)
        if deal.deal_id in self.failing:
            raise ScoringError(f"deal {deal.deal_id}: completion returned 500")
        return UrgencyResult(score=self.scores.get(deal.deal_id, "medium"), reason=f"reason for {deal.deal_id}")


class FakeDrafter(EmailDrafter):
    def __init__(self):
        self.failing: Set[str] = set()
        self.calls: List[str] = []

    async def draft_email(self, deal: DealContext, urgency: UrgencyResult) -> EmailDraft:
        self.calls.append(deal.deal_id)
        if deal.deal_id in self.failing:
            raise DraftingError(f"deal {deal.deal_id}: completion returned 500")
        return EmailDraft(subject=f"Following up on {deal.deal_name}", body=f"Hi {deal.contact_name}, any update?")


class FakeNotifier(ChatNotifier):
    def __init__(self):
        self.posted: List[FollowUpRecord] = []
        self.updates: List[Dict[str, str]] = []
        self.fail_update = False
        self.fail_post = False
        self.fail_post_after: Optional[int] = None

    async def post_card(self, record: FollowUpRecord) -> str:
        if self.fail_post or (self.fail_post_after is not None and len(self.posted) >= self.fail_post_after):
            raise ChatError("chat.postMessage error: channel_not_found")
        self.posted.append(record)
        return f"1700000000.{len(self.posted):06d}"

    async def update_card(self, message_ref: str, outcome: str, deal_name: str) -> None:
        if self.fail_update:
            raise ChatError("chat.update error: message_not_found")
        self.updates.append({"message_ref": message_ref, "outcome": outcome, "deal_name": deal_name})


@pytest.fixture
def store(tmp_path) -> FollowUpStore:
    return FollowUpStore(tmp_path / "follow-ups.db")


@pytest.fixture
def crm() -> FakeCRM:
    return FakeCRM()


@pytest.fixture
def scorer() -> FakeScorer:
    return FakeScorer()


@pytest.fixture
def drafter() -> FakeDrafter:
    return FakeDrafter()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def verifier() -> SignatureVerifier:
    return SignatureVerifier(SIGNING_SECRET, clock=lambda: FIXED_TS)


@pytest.fixture
def options() -> PipelineOptions:
    return PipelineOptions()


@pytest.fixture
def pipeline(crm, scorer, drafter, notifier, store, options) -> FollowUpPipeline:
    return FollowUpPipeline(
        DetectionStage(crm, store, DEFAULT_STALENESS_THRESHOLDS, clock=lambda: NOW),
        ScoringStage(scorer, options),
        DraftingStage(drafter, options),
        NotificationStage(notifier, store),
    )


@pytest.fixture
def executor(store, crm, notifier) -> ApprovalExecutor:
    return ApprovalExecutor(store, crm, notifier)


@pytest.fixture
def services(store, verifier, pipeline, executor) -> Services:
    return Services(store=store, verifier=verifier, pipeline=pipeline, executor=executor)


@pytest.fixture
async def client(services):
    """Async test client over the app, wired to the in-memory collaborators."""
    app = create_app(services=services)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
