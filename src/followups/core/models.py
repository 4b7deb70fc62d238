from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing_extensions import Literal

from .workflow import FollowUpStatus


UrgencyLevel = Literal["critical", "high", "medium", "low"]

URGENCY_ORDER: Dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}

# Stored as the owner when the CRM cannot resolve the deal owner.
FALLBACK_OWNER_EMAIL = "unknown@example.com"

_MODEL_CONFIG = {"extra": "forbid", "alias_generator": to_camel, "populate_by_name": True}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_utc_iso() -> str:
    return now_utc().isoformat().replace("+00:00", "Z")


def safe_uuid() -> str:
    return str(uuid.uuid4())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or epoch-milliseconds value into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    v = str(value).strip()
    if not v:
        return None
    if v.isdigit():
        return datetime.fromtimestamp(int(v) / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# CRM-side entities
# ---------------------------------------------------------------------------

class Deal(BaseModel):
    """An open deal as returned by the CRM."""
    id: str = Field(min_length=1)
    name: str = "Unnamed Deal"
    stage: Optional[str] = None
    amount: Optional[float] = None
    close_date: Optional[str] = None
    owner_id: Optional[str] = None
    last_modified: Optional[str] = None

    model_config = _MODEL_CONFIG


class Contact(BaseModel):
    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    company: Optional[str] = None

    model_config = _MODEL_CONFIG

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class EmailSummary(BaseModel):
    subject: str = "(no subject)"
    sender: str = Field(default="", alias="from")
    to: str = ""
    date: str = ""
    body_preview: str = ""

    model_config = _MODEL_CONFIG


# ---------------------------------------------------------------------------
# Per-run pipeline data (never persisted)
# ---------------------------------------------------------------------------

class DealContext(BaseModel):
    deal_id: str = Field(min_length=1)
    deal_name: str
    deal_stage: str
    amount: Optional[float] = Field(default=None, ge=0)
    close_date: Optional[str] = None
    owner_email: str
    contact_name: str = ""
    contact_email: str = Field(min_length=1)
    company_name: Optional[str] = None
    days_since_last_activity: int = Field(default=0, ge=0)
    recent_emails: List[EmailSummary] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


class UrgencyResult(BaseModel):
    score: UrgencyLevel
    reason: str = ""

    model_config = _MODEL_CONFIG


class EmailDraft(BaseModel):
    subject: str
    body: str

    model_config = _MODEL_CONFIG


class ScoredDeal(BaseModel):
    deal: DealContext
    urgency: UrgencyResult


class DraftedDeal(BaseModel):
    deal: DealContext
    urgency: UrgencyResult
    draft: EmailDraft


# ---------------------------------------------------------------------------
# Persisted follow-up record
# ---------------------------------------------------------------------------

class FollowUpRecord(BaseModel):
    """
    Persisted unit of work tracking one stale deal through approval.

    Serialized with camelCase keys (``dealId``, ``sentAt``...) both on disk
    and over the API.
    """
    id: str = Field(default_factory=safe_uuid)
    deal_id: str = Field(min_length=1)
    deal_name: str
    contact_email: str
    contact_name: str = ""
    owner_email: str = FALLBACK_OWNER_EMAIL
    urgency_score: UrgencyLevel
    urgency_reason: str = ""
    draft_subject: str
    draft_body: str
    status: FollowUpStatus = FollowUpStatus.PENDING
    message_ref: Optional[str] = None
    created_at: str = Field(default_factory=now_utc_iso)
    sent_at: Optional[str] = None

    model_config = _MODEL_CONFIG

    @classmethod
    def from_drafted(cls, drafted: DraftedDeal) -> "FollowUpRecord":
        deal = drafted.deal
        return cls(
            deal_id=deal.deal_id,
            deal_name=deal.deal_name,
            contact_email=deal.contact_email,
            contact_name=deal.contact_name,
            owner_email=deal.owner_email,
            urgency_score=drafted.urgency.score,
            urgency_reason=drafted.urgency.reason,
            draft_subject=drafted.draft.subject,
            draft_body=drafted.draft.body,
        )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dealName": self.deal_name,
            "urgency": self.urgency_score,
            "contact": self.contact_email,
            "status": FollowUpStatus(self.status).value,
        }


class PipelineResult(BaseModel):
    stale_deals_found: int = 0
    follow_ups_created: int = 0
    records: List[FollowUpRecord] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
