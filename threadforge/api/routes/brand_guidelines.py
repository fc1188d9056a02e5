"""Global brand guideline routes."""

from fastapi import APIRouter, Depends

from threadforge.api.dependencies import get_brand_guideline_service
from threadforge.schemas import BrandGuidelineBody
from threadforge.services.brand_guidelines import BrandGuidelineService

router = APIRouter(prefix="/api/v1/brand-guidelines", tags=["Brand guidelines"])


@router.get("", response_model=BrandGuidelineBody)
async def get_brand_guideline(
    service: BrandGuidelineService = Depends(get_brand_guideline_service),
):
    return BrandGuidelineBody(text=await service.get_text())


@router.put("", response_model=BrandGuidelineBody)
async def put_brand_guideline(
    body: BrandGuidelineBody,
    service: BrandGuidelineService = Depends(get_brand_guideline_service),
):
    """Replace the guideline; an empty text removes it."""
    return BrandGuidelineBody(text=await service.update(body.text))
