"""FastAPI dependencies: services from ``app.state``, client identity, rate limiting."""

from fastapi import Request

from threadforge.api.rate_limit import (
    MAX_CLIENT_ID_CHARS,
    FixedWindowRateLimiter,
    partition_key,
)
from threadforge.services.brand_guidelines import BrandGuidelineService
from threadforge.services.profile_analysis import ProfileAnalysisService
from threadforge.services.thread_generation import ThreadGenerationService
from threadforge.services.thread_history import ThreadHistoryService
from threadforge.services.thread_quality import ThreadQualityService
from threadforge.services.tweet_improver import TweetImproverService

CLIENT_ID_HEADER = "X-Client-Id"


def client_ip(request: Request) -> str:
    return request.client.host if request.client and request.client.host else "unknown"


def get_client_id(request: Request) -> str:
    """``X-Client-Id`` header, else the remote IP, else ``"unknown"``.

    A header longer than ``MAX_CLIENT_ID_CHARS`` is ignored, matching the
    rate-limit partition and the ``client_id`` column width.
    """
    header = (request.headers.get(CLIENT_ID_HEADER) or "").strip()
    if not header or len(header) > MAX_CLIENT_ID_CHARS:
        return client_ip(request)
    return header


async def enforce_rate_limit(request: Request) -> None:
    """Take one ``thread_generation`` permit for the calling partition."""
    limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
    header = request.headers.get(CLIENT_ID_HEADER)
    await limiter.acquire(partition_key(client_ip(request), header))


def get_generation_service(request: Request) -> ThreadGenerationService:
    return request.app.state.generation_service


def get_quality_service(request: Request) -> ThreadQualityService:
    return request.app.state.quality_service


def get_history_service(request: Request) -> ThreadHistoryService:
    return request.app.state.history_service


def get_profile_service(request: Request) -> ProfileAnalysisService:
    return request.app.state.profile_service


def get_improver_service(request: Request) -> TweetImproverService:
    return request.app.state.improver_service


def get_brand_guideline_service(request: Request) -> BrandGuidelineService:
    return request.app.state.brand_guideline_service
