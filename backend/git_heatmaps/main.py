from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import router
from .core.config import build_aggregator, get_settings
from .core.errors import HeatmapError

settings = get_settings()

# Configure logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: one aggregator and one cache for the process lifetime
    app.state.aggregator = build_aggregator(settings)
    if not settings.github_token:
        logger.warning("[Startup] GITHUB_TOKEN not set; GitHub requests need an X-GitHub-Token header")
    if not settings.gitlab_token:
        logger.warning("[Startup] GITLAB_TOKEN not set; GitLab requests need an X-GitLab-Token header")
    logger.info(
        f"[Startup] Cache max size {settings.cache_max_size}, TTLs github={settings.github_cache_ttl}s "
        f"gitlab={settings.gitlab_cache_ttl}s, GitLab at {settings.gitlab_base_url}"
    )

    yield
    # Shutdown: in-memory cache is dropped with the process
    app.state.aggregator.cache.clear()


app = FastAPI(
    title="Git Heatmaps API",
    description="Unified GitHub and GitLab contribution data",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HeatmapError)
async def heatmap_error_handler(request: Request, exc: HeatmapError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


# Include routes
app.include_router(router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("git_heatmaps.main:app", host="0.0.0.0", port=8000)
