"""Profile brand analysis route."""

from fastapi import APIRouter, Depends

from threadforge.api.dependencies import enforce_rate_limit, get_profile_service
from threadforge.schemas import ProfileAnalysisRequest, ProfileAnalysisResponse
from threadforge.services.profile_analysis import ProfileAnalysisService

router = APIRouter(prefix="/api/v1/profiles", tags=["Profiles"])


@router.post(
    "/analyze",
    response_model=ProfileAnalysisResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def analyze_profile(
    request: ProfileAnalysisRequest,
    service: ProfileAnalysisService = Depends(get_profile_service),
):
    """Build a brand description from a pasted bio and recent tweets."""
    return await service.analyze(request)
