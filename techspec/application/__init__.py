"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and the backend service.
"""

from techspec.application.auth_service import AuthService, SignUpResult
from techspec.application.import_service import ImportRowResult, ProductImportService
from techspec.application.profile_service import ProfileService
from techspec.application.review_service import ReviewService, ReviewSummary
from techspec.application.shop_service import RegistrationResult, ShopRegistration, ShopService
from techspec.application.stats_service import StatsAggregator, StatsCache
from techspec.application.visitor_service import TrackResult, Visit, VisitorTracker

__all__ = [
    "AuthService",
    "SignUpResult",
    "ImportRowResult",
    "ProductImportService",
    "ProfileService",
    "ReviewService",
    "ReviewSummary",
    "RegistrationResult",
    "ShopRegistration",
    "ShopService",
    "StatsAggregator",
    "StatsCache",
    "TrackResult",
    "Visit",
    "VisitorTracker",
]
