"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from techspec.api.admin import router as admin_router
from techspec.api.auth import router as auth_router
from techspec.api.health import router as health_router
from techspec.api.products import router as products_router
from techspec.api.profiles import router as profiles_router
from techspec.api.reviews import router as reviews_router
from techspec.api.shops import router as shops_router
from techspec.api.stats import router as stats_router

__all__ = [
    "admin_router",
    "auth_router",
    "health_router",
    "products_router",
    "profiles_router",
    "reviews_router",
    "shops_router",
    "stats_router",
]
