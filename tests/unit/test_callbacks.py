"""
Tests for approval callback parsing.
"""

import json
from urllib.parse import urlencode

import pytest

from conftest import FIXED_TS

from followups.core.errors import ValidationError
from followups.core.workflow import FollowUpAction
from followups.hitl.callbacks import build_callback_body, parse_approval_callback, sign_callback


def form(payload) -> str:
    return urlencode({"payload": payload if isinstance(payload, str) else json.dumps(payload)})


class TestParseApprovalCallback:
    def test_approve(self):
        action, follow_up_id = parse_approval_callback(build_callback_body("f-1"))
        assert action == FollowUpAction.APPROVE
        assert follow_up_id == "f-1"

    def test_dismiss(self):
        action, follow_up_id = parse_approval_callback(build_callback_body("f-2", "dismiss"))
        assert action == FollowUpAction.DISMISS
        assert follow_up_id == "f-2"

    def test_first_action_wins(self):
        body = form({"actions": [
            {"action_id": "dismiss", "value": "f-1"},
            {"action_id": "approve_send", "value": "f-2"},
        ]})
        assert parse_approval_callback(body) == (FollowUpAction.DISMISS, "f-1")

    def test_missing_payload(self):
        with pytest.raises(ValidationError, match="Missing payload"):
            parse_approval_callback("foo=bar")

    def test_malformed_json(self):
        with pytest.raises(ValidationError, match="Malformed payload"):
            parse_approval_callback(form("{not json"))

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "block_actions"},
            {"actions": []},
            {"actions": [{"action_id": "approve_send"}]},
            ["not", "an", "object"],
        ],
    )
    def test_no_action(self, payload):
        with pytest.raises(ValidationError, match="No action found"):
            parse_approval_callback(form(payload))

    def test_unknown_action(self):
        body = form({"actions": [{"action_id": "snooze", "value": "f-1"}]})
        with pytest.raises(ValidationError, match="Unknown action: snooze"):
            parse_approval_callback(body)


class TestSignCallback:
    def test_headers_verify(self, verifier):
        body = build_callback_body("f-1")
        headers = sign_callback(verifier, body, timestamp=FIXED_TS)

        assert headers["x-signature-timestamp"] == str(FIXED_TS)
        assert headers["content-type"] == "application/x-www-form-urlencoded"
        assert verifier.verify(body, headers["x-signature-timestamp"], headers["x-signature"])
