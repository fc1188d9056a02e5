"""Liveness endpoint."""

from fastapi import APIRouter, Request

from threadforge import __version__
from threadforge.schemas import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Service status plus which optional backends are wired up."""
    state = request.app.state
    return HealthResponse(
        version=__version__,
        database=getattr(state, "db", None) is not None,
        web_search=state.search_client.is_configured,
    )
