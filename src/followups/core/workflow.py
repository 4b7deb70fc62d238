"""
Follow-Up Workflow

State machine for a follow-up record: created pending, closed out as either
sent (approved) or dismissed. Both closing states are terminal.
"""

from enum import Enum
from typing import Dict, List, Optional

from .errors import InvalidTransitionError


class FollowUpStatus(str, Enum):
    """Lifecycle states of a follow-up record."""
    PENDING = "pending"
    SENT = "sent"
    DISMISSED = "dismissed"


class FollowUpAction(str, Enum):
    """Human decisions that close out a pending follow-up."""
    APPROVE = "approve"
    DISMISS = "dismiss"


STATUS_TRANSITIONS: Dict[FollowUpStatus, List[FollowUpStatus]] = {
    FollowUpStatus.PENDING: [FollowUpStatus.SENT, FollowUpStatus.DISMISSED],
    FollowUpStatus.SENT: [],  # Terminal
    FollowUpStatus.DISMISSED: [],  # Terminal
}

ACTION_TARGETS: Dict[FollowUpAction, FollowUpStatus] = {
    FollowUpAction.APPROVE: FollowUpStatus.SENT,
    FollowUpAction.DISMISS: FollowUpStatus.DISMISSED,
}

# Callback button ids as posted on the approval card
CALLBACK_ACTIONS: Dict[str, FollowUpAction] = {
    "approve_send": FollowUpAction.APPROVE,
    "dismiss": FollowUpAction.DISMISS,
}


def is_terminal(status: FollowUpStatus) -> bool:
    return not STATUS_TRANSITIONS[FollowUpStatus(status)]


def can_transition(from_status: FollowUpStatus, to_status: FollowUpStatus) -> bool:
    return FollowUpStatus(to_status) in STATUS_TRANSITIONS[FollowUpStatus(from_status)]


def validate_transition(from_status: FollowUpStatus, to_status: FollowUpStatus) -> None:
    """Raise InvalidTransitionError unless from_status -> to_status is allowed."""
    src = FollowUpStatus(from_status)
    dst = FollowUpStatus(to_status)
    if not can_transition(src, dst):
        raise InvalidTransitionError(
            f"Invalid transition {src.value} -> {dst.value}",
            from_status=src.value,
            to_status=dst.value,
        )


def validate_sent_at(status: FollowUpStatus, sent_at: Optional[str]) -> None:
    """sent_at must be present exactly when the record is sent."""
    is_sent = FollowUpStatus(status) == FollowUpStatus.SENT
    if is_sent and not sent_at:
        raise InvalidTransitionError("sent records require sent_at", to_status=FollowUpStatus.SENT.value)
    if not is_sent and sent_at:
        raise InvalidTransitionError(
            f"sent_at is only allowed on sent records (status={FollowUpStatus(status).value})",
            to_status=FollowUpStatus(status).value,
        )
