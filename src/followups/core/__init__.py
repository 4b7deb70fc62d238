"""
Follow-Up Core Package

Data model, state machine, record store and configuration.
"""

from .errors import (
    FollowUpError,
    ConfigurationError,
    EntityLookupError,
    ValidationError,
    AuthenticationError,
    NotFoundError,
    AlreadyProcessedError,
    DuplicatePendingError,
    InvalidTransitionError,
    CollaboratorError,
    CRMError,
    ScoringError,
    DraftingError,
    ChatError,
)
from .models import (
    Deal,
    Contact,
    EmailSummary,
    DealContext,
    UrgencyResult,
    EmailDraft,
    ScoredDeal,
    DraftedDeal,
    FollowUpRecord,
    PipelineResult,
    UrgencyLevel,
    URGENCY_ORDER,
    FALLBACK_OWNER_EMAIL,
)
from .workflow import FollowUpStatus, FollowUpAction
from .store import FollowUpStore
from .config import Settings

__all__ = [
    # Errors
    "FollowUpError",
    "ConfigurationError",
    "EntityLookupError",
    "ValidationError",
    "AuthenticationError",
    "NotFoundError",
    "AlreadyProcessedError",
    "DuplicatePendingError",
    "InvalidTransitionError",
    "CollaboratorError",
    "CRMError",
    "ScoringError",
    "DraftingError",
    "ChatError",
    # Models
    "Deal",
    "Contact",
    "EmailSummary",
    "DealContext",
    "UrgencyResult",
    "EmailDraft",
    "ScoredDeal",
    "DraftedDeal",
    "FollowUpRecord",
    "PipelineResult",
    "UrgencyLevel",
    "URGENCY_ORDER",
    "FALLBACK_OWNER_EMAIL",
    # Workflow
    "FollowUpStatus",
    "FollowUpAction",
    # Store / config
    "FollowUpStore",
    "Settings",
]
