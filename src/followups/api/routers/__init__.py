from .health import router as health_router
from .pipeline import router as pipeline_router
from .records import router as records_router
from .webhooks import router as webhooks_router

__all__ = ["health_router", "pipeline_router", "records_router", "webhooks_router"]
