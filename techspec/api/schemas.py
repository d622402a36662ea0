"""API schemas for the storefront API.

Pydantic models for request/response validation and serialization.
"""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors (except the admin endpoints) follow this format.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Any = Field(default_factory=list, description="Additional error details")
    request_id: str | None = Field(default=None, description="Request ID for correlation")


class AdminErrorResponse(BaseModel):
    """Error body of the admin endpoints."""

    error: str


class PaginatedResponse(BaseModel):
    """Base paginated response."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Items per page")
    has_more: bool = Field(..., description="Whether there are more pages")


# ============================================================================
# Catalog Schemas
# ============================================================================


class CategoryResponse(BaseModel):
    """Product category."""

    id: str
    name: str
    slug: str
    description: str | None = None
    icon: str | None = None


class ProductResponse(BaseModel):
    """Product summary as shown in the grid."""

    id: str
    name: str
    slug: str
    brand: str
    model: str
    category_id: str | None = None
    category: CategoryResponse | None = None
    description: str | None = None
    specifications: dict[str, Any] = Field(default_factory=dict)
    images: list[str] = Field(default_factory=list)
    image_url: str = Field(..., description="Optimized main image URL")
    release_date: date | None = None
    price: float | None = None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductListResponse(PaginatedResponse):
    """Paginated product list."""

    items: list[ProductResponse]


class ProductDetailResponse(ProductResponse):
    """Product with its image gallery."""

    gallery: list[str] = Field(default_factory=list)


class ShopSummary(BaseModel):
    """Shop fields shown next to an offer."""

    id: str
    name: str
    slug: str
    address: str | None = None
    phone: str | None = None
    website: str | None = None


class ShopOfferResponse(BaseModel):
    """A shop's price and stock for a product."""

    id: str
    shop_id: str
    product_id: str
    price: float
    stock_status: str
    stock_label: str
    stock_quantity: int | None = None
    last_updated: datetime | None = None
    shop: ShopSummary | None = None


class ComparisonRowResponse(BaseModel):
    """One specification row of the comparison table."""

    key: str
    label: str
    values: list[str]


class ComparisonResponse(BaseModel):
    """Side-by-side comparison of up to four products."""

    products: list[ProductResponse]
    price_row: list[str]
    rows: list[ComparisonRowResponse]
    can_add_more: bool


# ============================================================================
# Review Schemas
# ============================================================================


class ReviewCreateRequest(BaseModel):
    """Request to submit a review."""

    rating: int = Field(..., description="Rating from 1 to 5")
    title: str = Field(..., max_length=200)
    content: str = Field(..., max_length=5000)


class ReviewResponse(BaseModel):
    """Product review."""

    id: str
    product_id: str
    user_id: str
    rating: int
    title: str
    content: str
    helpful_count: int
    status: str
    product_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReviewListResponse(BaseModel):
    """Approved reviews with their average rating."""

    items: list[ReviewResponse]
    count: int
    average_rating: float | None = None


class VoteRequest(BaseModel):
    """Helpfulness vote."""

    is_helpful: bool


class VoteResponse(BaseModel):
    """The caller's vote on a review (null when they have not voted)."""

    review_id: str
    is_helpful: bool | None = None


# ============================================================================
# Shop Schemas
# ============================================================================


class ShopCreateRequest(BaseModel):
    """Shop registration form."""

    name: str = Field(..., max_length=200)
    description: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None


class ShopResponse(BaseModel):
    """Registered shop."""

    id: str
    owner_id: str
    name: str
    slug: str
    status: str
    description: str | None = None
    logo_url: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ShopRegistrationResponse(BaseModel):
    """Result of a shop registration."""

    shop: ShopResponse
    role_updated: bool


# ============================================================================
# Auth and Profile Schemas
# ============================================================================


class SignUpRequest(BaseModel):
    email: str
    password: str
    full_name: str


class SignInRequest(BaseModel):
    email: str
    password: str


class PasswordResetRequest(BaseModel):
    email: str


class PasswordUpdateRequest(BaseModel):
    password: str
    confirm_password: str


class VerifyOtpRequest(BaseModel):
    """Email verification or recovery token."""

    type: str = "email"
    token_hash: str | None = None
    email: str | None = None
    token: str | None = None


class UserResponse(BaseModel):
    id: str
    email: str | None = None
    full_name: str | None = None


class SessionResponse(BaseModel):
    """Signed-in session."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    user: UserResponse | None = None


class SignUpResponse(BaseModel):
    """Created account; ``session`` is null until the email is confirmed."""

    user: UserResponse | None = None
    session: SessionResponse | None = None
    confirmation_required: bool


class MessageResponse(BaseModel):
    message: str


class ProfileResponse(BaseModel):
    """User profile."""

    id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    role: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProfileUpdateRequest(BaseModel):
    """Editable profile fields; omitted fields are left unchanged."""

    full_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None


# ============================================================================
# Stats and Visit Schemas
# ============================================================================


class StatsResponse(BaseModel):
    """Platform counters."""

    total_visitors: int
    total_products: int
    total_shops: int
    total_reviews: int
    total_users: int


class VisitRequest(BaseModel):
    """Page view reported by the browser."""

    page_url: str | None = None
    referrer: str | None = None


class VisitResponse(BaseModel):
    session_id: str
    recorded: bool


# ============================================================================
# Admin Schemas
# ============================================================================


class CsvImportRequest(BaseModel):
    """Bulk import payload."""

    content: str = Field(..., min_length=1)


class CsvImportResponse(BaseModel):
    results: list[dict[str, Any]]


class ModerateReviewRequest(BaseModel):
    """Review moderation decision."""

    model_config = ConfigDict(populate_by_name=True)

    review_id: str = Field(..., alias="reviewId", min_length=1)
    status: Literal["approved", "rejected"]


class ShopStatusRequest(BaseModel):
    """Shop moderation decision."""

    status: Literal["approved", "rejected"]


class OkResponse(BaseModel):
    ok: bool = True
