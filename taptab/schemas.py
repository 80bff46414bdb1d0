"""
Pydantic Schemas for Request/Response Validation

Table rows travel as plain dicts (see ``sanitize_row``); the typed schemas
below cover the dedicated endpoints.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any
from datetime import datetime

from taptab.core.sanitize import sanitize_input, sanitize_url


# Free-text columns and their length caps
TEXT_FIELDS = {
    "name": 200,
    "description": 2000,
    "tagline": 500,
    "price": 50,
}
URL_FIELDS = ("image_url", "hero_image_url")


def sanitize_row(row: dict[str, Any]) -> dict[str, Any]:
    """Strip markup from text columns and drop unsafe URLs in a table write."""
    cleaned = dict(row)
    for field_name, max_length in TEXT_FIELDS.items():
        if isinstance(cleaned.get(field_name), str):
            cleaned[field_name] = sanitize_input(cleaned[field_name], max_length)
    for field_name in URL_FIELDS:
        if isinstance(cleaned.get(field_name), str):
            cleaned[field_name] = sanitize_url(cleaned[field_name]) or None
    return cleaned


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class RestaurantCreate(BaseModel):
    """Request schema for creating a restaurant with its starter sections."""
    name: str = Field(..., min_length=1, max_length=200, examples=["Cafe Sol"])
    owner_id: Optional[str] = Field(None, max_length=64)
    slug: Optional[str] = Field(None, max_length=200, examples=["cafe-sol"])
    tagline: Optional[str] = Field(None, max_length=500)
    hero_image_url: Optional[str] = None

    @field_validator('name', 'tagline')
    @classmethod
    def clean_text(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_input(v)

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError('Restaurant name is required')
        return v

    @field_validator('hero_image_url')
    @classmethod
    def clean_url(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_url(v) or None


class OrderUpdate(BaseModel):
    """New position of one row."""
    id: str
    order_index: int = Field(..., ge=0)


class ReorderRequest(BaseModel):
    """Batch ``order_index`` rewrite for one table."""
    table: str
    updates: List[OrderUpdate] = Field(..., min_length=1)


class CheckoutRequest(BaseModel):
    """Start a premium subscription checkout."""
    user_id: str = Field(..., min_length=1, max_length=64)
    customer_email: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None

    @field_validator('success_url', 'cancel_url')
    @classmethod
    def clean_url(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_url(v) or None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class LinkResponse(BaseModel):
    """Short link of a restaurant."""
    restaurant_hash: str
    menu_id: str
    short_path: str
    short_url: str


class ResolvedLinkResponse(BaseModel):
    slug: str
    canonical_url: str


class ImportResponse(BaseModel):
    success: bool
    imported: int
    created_categories: List[str] = []
    created_subcategories: List[str] = []


class UploadResponse(BaseModel):
    url: str
    width: int
    height: int
    size_bytes: int


class SubscriptionStatusResponse(BaseModel):
    has_premium: bool
    status: Optional[str]
    plan_type: Optional[str]
    current_period_end: Optional[str] = None
    cancel_at_period_end: bool = False


class CheckoutResponse(BaseModel):
    session_id: str
    url: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    backend: str
    menu_cache: str
    billing_service: str
    timestamp: datetime
