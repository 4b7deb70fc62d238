"""
Tests for the follow-up state machine.
"""

import pytest

from followups.core.errors import InvalidTransitionError
from followups.core.workflow import (
    ACTION_TARGETS,
    CALLBACK_ACTIONS,
    STATUS_TRANSITIONS,
    FollowUpAction,
    FollowUpStatus,
    can_transition,
    is_terminal,
    validate_sent_at,
    validate_transition,
)


class TestFollowUpStatus:
    def test_all_statuses_defined(self):
        assert {s.value for s in FollowUpStatus} == {"pending", "sent", "dismissed"}

    def test_transitions_defined_for_all_statuses(self):
        for status in FollowUpStatus:
            assert status in STATUS_TRANSITIONS, f"Missing transitions for {status}"

    def test_sent_and_dismissed_are_terminal(self):
        assert is_terminal(FollowUpStatus.SENT)
        assert is_terminal(FollowUpStatus.DISMISSED)
        assert not is_terminal(FollowUpStatus.PENDING)

    def test_callback_action_ids(self):
        assert CALLBACK_ACTIONS["approve_send"] == FollowUpAction.APPROVE
        assert CALLBACK_ACTIONS["dismiss"] == FollowUpAction.DISMISS

    def test_every_action_closes_a_pending_record(self):
        assert set(ACTION_TARGETS) == set(FollowUpAction)
        for target in ACTION_TARGETS.values():
            assert can_transition(FollowUpStatus.PENDING, target)
            assert is_terminal(target)


class TestTransitions:
    @pytest.mark.parametrize("target", [FollowUpStatus.SENT, FollowUpStatus.DISMISSED])
    def test_pending_can_close(self, target):
        assert can_transition(FollowUpStatus.PENDING, target)
        validate_transition(FollowUpStatus.PENDING, target)

    @pytest.mark.parametrize(
        "src,dst",
        [
            (FollowUpStatus.SENT, FollowUpStatus.PENDING),
            (FollowUpStatus.SENT, FollowUpStatus.DISMISSED),
            (FollowUpStatus.DISMISSED, FollowUpStatus.SENT),
            (FollowUpStatus.DISMISSED, FollowUpStatus.PENDING),
        ],
    )
    def test_terminal_states_cannot_move(self, src, dst):
        with pytest.raises(InvalidTransitionError) as exc:
            validate_transition(src, dst)
        assert exc.value.from_status == src.value
        assert exc.value.to_status == dst.value

    def test_accepts_plain_strings(self):
        assert can_transition("pending", "sent")
        assert not can_transition("sent", "pending")


class TestSentAt:
    def test_sent_requires_sent_at(self):
        with pytest.raises(InvalidTransitionError):
            validate_sent_at(FollowUpStatus.SENT, None)
        validate_sent_at(FollowUpStatus.SENT, "2026-03-10T12:00:00Z")

    @pytest.mark.parametrize("status", [FollowUpStatus.PENDING, FollowUpStatus.DISMISSED])
    def test_sent_at_only_on_sent(self, status):
        validate_sent_at(status, None)
        with pytest.raises(InvalidTransitionError):
            validate_sent_at(status, "2026-03-10T12:00:00Z")
