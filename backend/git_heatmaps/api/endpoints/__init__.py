from .contributions import router as contributions_router
from .status import router as status_router

__all__ = ["contributions_router", "status_router"]
