"""API routers, mounted by ``threadforge.api.app.create_app``."""
from threadforge.api.routes.brand_guidelines import router as brand_guidelines_router
from threadforge.api.routes.health import router as health_router
from threadforge.api.routes.profiles import router as profiles_router
from threadforge.api.routes.threads import router as threads_router
from threadforge.api.routes.tweets import router as tweets_router

__all__ = [
    "brand_guidelines_router",
    "health_router",
    "profiles_router",
    "threads_router",
    "tweets_router",
]
