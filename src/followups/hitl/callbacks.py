"""
Approval callback payloads.

Interactive callbacks arrive URL-encoded with a single ``payload`` field
holding JSON: ``{"type": "block_actions", "actions": [{"action_id", "value"}], ...}``.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlencode

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import ValidationError
from ..core.workflow import CALLBACK_ACTIONS, FollowUpAction
from .verify import SignatureVerifier


class CallbackAction(BaseModel):
    action_id: str = Field(min_length=1)
    value: str = Field(min_length=1)


class CallbackPayload(BaseModel):
    type: Optional[str] = None
    actions: List[CallbackAction] = Field(min_length=1)
    user: Optional[Dict[str, Any]] = None


def parse_approval_callback(raw_body: str) -> Tuple[FollowUpAction, str]:
    """
    Extract (action, follow_up_id) from a verified callback body.

    Raises:
        ValidationError: missing payload, bad JSON, no actions, or an
            action id other than approve_send / dismiss.
    """
    form = parse_qs(raw_body, keep_blank_values=True)
    values = form.get("payload")
    if not values or not values[0]:
        raise ValidationError("Missing payload")

    try:
        data = json.loads(values[0])
    except ValueError as e:
        raise ValidationError("Malformed payload") from e

    try:
        payload = CallbackPayload.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError("No action found") from e

    action = payload.actions[0]
    follow_up_action = CALLBACK_ACTIONS.get(action.action_id)
    if follow_up_action is None:
        raise ValidationError(f"Unknown action: {action.action_id}")
    return follow_up_action, action.value


def build_callback_body(follow_up_id: str, action_id: str = "approve_send") -> str:
    """URL-encoded block_actions body as the chat platform would send it."""
    payload = {
        "type": "block_actions",
        "actions": [{"action_id": action_id, "value": follow_up_id, "type": "button"}],
        "user": {"id": "U_LOCAL", "name": "local-user"},
    }
    return urlencode({"payload": json.dumps(payload)})


def sign_callback(verifier: SignatureVerifier, raw_body: str, timestamp: Optional[int] = None) -> Dict[str, str]:
    """Headers for a signed callback request."""
    ts = str(int(time.time()) if timestamp is None else timestamp)
    return {
        "x-signature-timestamp": ts,
        "x-signature": verifier.compute_signature(raw_body, ts),
        "content-type": "application/x-www-form-urlencoded",
    }
