"""
ThreadForge FastAPI application.

Run with::

    uvicorn threadforge.api.app:create_app --factory --host 0.0.0.0 --port 8000

``create_app`` accepts pre-built collaborators so tests can swap in fakes;
anything not supplied is built from ``Settings``.  The Supabase client is
created during startup because it needs an ``await``.
"""

import logging
import secrets
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from threadforge import __version__
from threadforge.api.dependencies import get_client_id
from threadforge.api.errors import error_response, register_exception_handlers
from threadforge.api.rate_limit import FixedWindowRateLimiter
from threadforge.api.routes import (
    brand_guidelines_router,
    health_router,
    profiles_router,
    threads_router,
    tweets_router,
)
from threadforge.config import Settings, get_settings
from threadforge.database import SupabaseDB
from threadforge.exceptions import NotFoundError
from threadforge.logging import (
    LogComponent,
    LogLevel,
    bind_request_context,
    get_logger,
    init_logger,
    is_logger_initialized,
    reset_request_context,
)
from threadforge.services.brand_guidelines import BrandGuidelineService
from threadforge.services.profile_analysis import ProfileAnalysisService
from threadforge.services.thread_generation import ThreadGenerationService
from threadforge.services.thread_history import ThreadHistoryService
from threadforge.services.thread_quality import ThreadQualityService
from threadforge.services.tweet_improver import TweetImproverService
from threadforge.services.web_search import WebSearchService
from threadforge.tools.serper import SerperClient
from threadforge.tools.xai_client import XaiChatClient
from threadforge.utils import generate_id

logger = logging.getLogger(__name__)

GATEWAY_TOKEN_HEADER = "X-Gateway-Token"
REQUEST_ID_HEADER = "X-Request-Id"
ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "Authorization", "X-Client-Id", GATEWAY_TOKEN_HEADER]


def _attach_db_services(app: FastAPI, db: SupabaseDB) -> None:
    """Wire the services that need the database."""
    state = app.state
    state.db = db
    state.generation_service = ThreadGenerationService(
        state.chat_client,
        db,
        quality=state.quality_service,
        web_search=state.web_search_service,
        config=state.settings.xai,
    )
    state.history_service = ThreadHistoryService(db)
    state.brand_guideline_service = BrandGuidelineService(db)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the event logger and connect Supabase unless a db was injected."""
    settings: Settings = app.state.settings

    if not is_logger_initialized():
        init_logger(log_dir=settings.log_dir, min_level=LogLevel.from_name(settings.log_level))
    event_logger = get_logger()

    if app.state.db is None:
        db = await SupabaseDB.create(settings.supabase)
        _attach_db_services(app, db)
        event_logger.attach_db(db)

    await event_logger.info(
        LogComponent.STARTUP,
        f"Starting {settings.app_name} v{__version__}",
        data={
            "environment": settings.environment,
            "model": settings.xai.effective_model,
            "light_model": settings.xai.effective_light_model,
            "web_search": app.state.search_client.is_configured,
            "gateway_token": bool(settings.server.gateway_token),
        },
    )

    yield

    await event_logger.info(LogComponent.STARTUP, f"Shutting down {settings.app_name}")
    await event_logger.flush()


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[SupabaseDB] = None,
    chat_client: Optional[XaiChatClient] = None,
    search_client: Optional[SerperClient] = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Twitter/X thread generation with xAI",
        version=__version__,
        lifespan=lifespan,
    )

    state = app.state
    state.settings = settings
    state.db = None
    state.chat_client = chat_client or XaiChatClient(settings.xai)
    state.search_client = search_client or SerperClient(settings.serper)
    state.rate_limiter = FixedWindowRateLimiter(settings.rate_limit)
    state.quality_service = ThreadQualityService()
    state.web_search_service = WebSearchService(
        state.chat_client, state.search_client, settings.xai
    )
    state.profile_service = ProfileAnalysisService(state.chat_client, settings.xai)
    state.improver_service = TweetImproverService(state.chat_client, settings.xai)
    if db is not None:
        _attach_db_services(app, db)

    register_exception_handlers(app)
    _add_middleware(app, settings)

    app.include_router(threads_router)
    app.include_router(profiles_router)
    app.include_router(tweets_router)
    app.include_router(brand_guidelines_router)
    app.include_router(health_router)

    static_path = settings.server.static_path
    if static_path.is_dir():
        _mount_frontend(app, static_path)
    else:
        logger.info("No frontend build at %s; serving API only", static_path)

    return app


def _add_middleware(app: FastAPI, settings: Settings) -> None:
    # Added last runs first: CORS wraps the request log, which wraps the gateway check.
    gateway_token = settings.server.gateway_token

    @app.middleware("http")
    async def require_gateway_token(request: Request, call_next):
        if gateway_token and request.url.path.startswith("/api/"):
            supplied = request.headers.get(GATEWAY_TOKEN_HEADER) or ""
            if not secrets.compare_digest(supplied, gateway_token):
                return error_response(401, "Unauthorized")
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_id()
        tokens = bind_request_context(request_id, get_client_id(request))
        started = time.monotonic()
        try:
            response = await call_next(request)
        except Exception as exc:
            await _log_request(request, 500, started, error=exc)
            raise
        else:
            await _log_request(request, response.status_code, started)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            reset_request_context(tokens)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
    )


async def _log_request(
    request: Request, status: int, started: float, error: Optional[BaseException] = None
) -> None:
    if not is_logger_initialized():
        return
    duration_ms = int((time.monotonic() - started) * 1000)
    level = LogLevel.ERROR if status >= 500 else LogLevel.WARNING if status >= 400 else LogLevel.INFO
    await get_logger().log(
        level,
        LogComponent.API,
        f"{request.method} {request.url.path} -> {status}",
        data={"method": request.method, "path": request.url.path, "status": status},
        error=error,
        duration_ms=duration_ms,
    )


def _mount_frontend(app: FastAPI, static_path: Path) -> None:
    """Serve the built SPA; unknown non-API paths get ``index.html``."""
    root = static_path.resolve()
    index = root / "index.html"

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_frontend(full_path: str):
        if full_path.startswith("api/"):
            raise NotFoundError("Not found")
        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and root in candidate.parents:
            return FileResponse(candidate)
        if not index.is_file():
            raise NotFoundError("Not found")
        return FileResponse(index)
