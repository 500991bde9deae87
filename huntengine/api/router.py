"""Master API router — includes all sub-routers."""

from fastapi import APIRouter

from .routes.hunts import router as hunts_router
from .routes.indicators import router as indicators_router
from .routes.matches import router as matches_router
from .routes.search import router as search_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(indicators_router)
api_router.include_router(hunts_router)
api_router.include_router(matches_router)
api_router.include_router(search_router)
