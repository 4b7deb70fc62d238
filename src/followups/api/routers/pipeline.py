"""
Pipeline Endpoints

- GET  /pipeline/run - run one detect -> score -> draft -> notify pass
- POST /pipeline/run - same, for schedulers that prefer POST
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...core.errors import FollowUpError
from ..dependencies import Services, get_services
from ..middleware.trace import get_trace_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@router.api_route("/run", methods=["GET", "POST"])
async def run_pipeline(services: Services = Depends(get_services)) -> Dict[str, Any]:
    """
    Run the follow-up pipeline once.

    A failing stage aborts the run; follow-ups created before the failure
    remain stored.
    """
    logger.info("Pipeline run requested")
    try:
        result = await services.pipeline.run()
    except FollowUpError as e:
        logger.error("Pipeline run failed: %s", e.message, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": e.message, "trace_id": get_trace_id()},
        )

    return {
        "success": True,
        "staleDealsFound": result.stale_deals_found,
        "followUpsCreated": result.follow_ups_created,
        "records": [r.to_summary() for r in result.records],
        "skipped": result.skipped,
    }
