from fastapi import APIRouter

from .endpoints import contributions_router, status_router

router = APIRouter()
router.include_router(status_router)
router.include_router(contributions_router)
