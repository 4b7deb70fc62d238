"""
Follow-Up Record Endpoints

- GET /records            - all follow-ups in creation order
- GET /records/{id}       - one follow-up
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from ...core.workflow import FollowUpStatus
from ..dependencies import Services, get_services
from ..error_codes import ErrorCode
from ..exceptions import NotFoundError

router = APIRouter(prefix="/records", tags=["records"])


@router.get("")
async def list_records(
    status: Optional[FollowUpStatus] = Query(None, description="Filter by status"),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    if status is None:
        records = services.store.get_all()
    else:
        records = services.store.list_by_status(status)
    return {"success": True, "records": [r.to_json() for r in records]}


@router.get("/{follow_up_id}")
async def get_record(follow_up_id: str, services: Services = Depends(get_services)) -> Dict[str, Any]:
    record = services.store.get_by_id(follow_up_id)
    if record is None:
        raise NotFoundError(f"Follow-up '{follow_up_id}' not found", code=ErrorCode.FOLLOW_UP_NOT_FOUND)
    return {"success": True, "record": record.to_json()}
