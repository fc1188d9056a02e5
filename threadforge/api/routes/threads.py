"""
Thread routes: generation, single-tweet regeneration, quality scoring,
history and feedback.
"""

from typing import List

from fastapi import APIRouter, Depends

from threadforge.api.dependencies import (
    enforce_rate_limit,
    get_client_id,
    get_generation_service,
    get_history_service,
    get_quality_service,
)
from threadforge.schemas import (
    GenerateThreadRequest,
    GenerateThreadResponse,
    RegenerateTweetRequest,
    RegenerateTweetResponse,
    ThreadFeedbackRequest,
    ThreadHistoryDetail,
    ThreadHistoryListItem,
    ThreadQualityReportSchema,
    ThreadQualityRequest,
)
from threadforge.services.thread_generation import ThreadGenerationService
from threadforge.services.thread_history import ThreadHistoryService
from threadforge.services.thread_quality import ThreadQualityService

router = APIRouter(prefix="/api/v1/threads", tags=["Threads"])


@router.post(
    "/generate",
    response_model=GenerateThreadResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def generate_thread(
    request: GenerateThreadRequest,
    client_id: str = Depends(get_client_id),
    service: ThreadGenerationService = Depends(get_generation_service),
):
    """Generate a thread, score it and store it as a draft."""
    return await service.generate(request, client_id)


@router.post(
    "/regenerate-tweet",
    response_model=RegenerateTweetResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def regenerate_tweet(
    request: RegenerateTweetRequest,
    service: ThreadGenerationService = Depends(get_generation_service),
):
    """Rewrite one tweet of a thread in place."""
    return await service.regenerate_tweet(request)


@router.post("/quality", response_model=ThreadQualityReportSchema)
async def analyze_quality(
    request: ThreadQualityRequest,
    service: ThreadQualityService = Depends(get_quality_service),
):
    report = service.analyze(request.tweets, request.tone)
    return ThreadQualityReportSchema.model_validate(report.to_dict())


@router.get("/history", response_model=List[ThreadHistoryListItem])
async def list_history(
    limit: int = 20,
    offset: int = 0,
    service: ThreadHistoryService = Depends(get_history_service),
):
    """Stored drafts, newest first."""
    return await service.list_threads(limit=limit, offset=offset)


@router.get("/history/{thread_id}", response_model=ThreadHistoryDetail)
async def get_history_item(
    thread_id: str,
    service: ThreadHistoryService = Depends(get_history_service),
):
    return await service.get(thread_id)


@router.post("/history/{thread_id}/feedback", response_model=ThreadHistoryDetail)
async def submit_feedback(
    thread_id: str,
    request: ThreadFeedbackRequest,
    service: ThreadHistoryService = Depends(get_history_service),
):
    """Record rating, feedback tags and whether this was the final version."""
    return await service.submit_feedback(thread_id, request)
