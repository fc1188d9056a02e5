"""Single-tweet improvement routes."""

from typing import Dict

from fastapi import APIRouter, Depends

from threadforge.api.dependencies import enforce_rate_limit, get_improver_service
from threadforge.schemas import ImproveTweetRequest, ImproveTweetResponse
from threadforge.services.tweet_improver import TweetImproverService

router = APIRouter(prefix="/api/v1/tweets", tags=["Tweets"])


@router.post(
    "/improve",
    response_model=ImproveTweetResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def improve_tweet(
    request: ImproveTweetRequest,
    service: TweetImproverService = Depends(get_improver_service),
):
    return await service.improve(request)


@router.get("/improvement-types", response_model=Dict[str, str])
async def improvement_types():
    """Improvement type keys with a short description of each."""
    return TweetImproverService.improvement_types()
