"""
Approval Callback Endpoint

POST /webhooks/approval

Receives the approve/dismiss button callback from the chat platform. The
signature is checked against the raw body before anything is parsed.

Responses:
- 200 {"ok": true, "action": "sent"|"dismissed", "dealName": ...}
- 400 malformed payload or unknown action
- 401 bad signature or stale timestamp
- 404 follow-up missing or already processed
- 500 send/chat failure
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from ...core.errors import CollaboratorError
from ...core.errors import ValidationError as PayloadError
from ...core.workflow import FollowUpAction
from ...hitl.callbacks import parse_approval_callback
from ..dependencies import Services, get_services
from ..error_codes import ErrorCode
from ..exceptions import CollaboratorFailure, NotFoundError, UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

TIMESTAMP_HEADER = "x-signature-timestamp"
SIGNATURE_HEADER = "x-signature"

OUTCOMES = {
    FollowUpAction.APPROVE: "sent",
    FollowUpAction.DISMISS: "dismissed",
}


@router.post("/approval")
async def approval_callback(request: Request, services: Services = Depends(get_services)) -> Dict[str, Any]:
    raw_body = await request.body()
    timestamp = request.headers.get(TIMESTAMP_HEADER, "")
    signature = request.headers.get(SIGNATURE_HEADER, "")

    if not services.verifier.verify(raw_body, timestamp, signature):
        raise UnauthorizedError("Invalid signature")

    try:
        action, follow_up_id = parse_approval_callback(raw_body.decode("utf-8", errors="replace"))
    except PayloadError as e:
        raise ValidationError(e.message) from e

    logger.info("Approval callback: action=%s follow_up_id=%s", action.value, follow_up_id)

    try:
        record = await services.executor.decide(action, follow_up_id)
    except CollaboratorError as e:
        logger.error("Approval callback failed: %s", e.message, exc_info=True)
        raise CollaboratorFailure("Failed to process action") from e

    if record is None:
        raise NotFoundError("Follow-up not found or already processed", code=ErrorCode.FOLLOW_UP_NOT_FOUND)

    return {"ok": True, "action": OUTCOMES[action], "dealName": record.deal_name}
