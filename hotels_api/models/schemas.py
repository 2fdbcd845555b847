"""Request/response models for the hotels API.

Free-text fields that may carry editor HTML are marked with ``SanitizeHTML``;
everything else is plain data and never touched by the sanitizer.
"""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field

from hotels_api.sanitization.marker import SanitizeHTML


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    service: str
    version: str
    status: str
    uptime_seconds: float
    sanitizer_cache_entries: int


class FacilityType(str, Enum):
    POOL = "POOL"
    SPA = "SPA"
    GYM = "GYM"
    RESTAURANT = "RESTAURANT"
    PARKING = "PARKING"


# ── Facilities ──────────────────────────────────────────────────────────


class FacilityInput(BaseModel):
    type: FacilityType
    short_description: Annotated[str | None, SanitizeHTML()] = Field(default=None, max_length=2000)


class Facility(FacilityInput):
    id: int


# ── Hotels ──────────────────────────────────────────────────────────────


class HotelInput(BaseModel):
    """Body of POST/PUT /v1/hotels."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Annotated[str | None, SanitizeHTML()] = Field(default=None, max_length=20000)
    address: str = Field(default="", max_length=500)
    city: str = Field(default="", max_length=100)
    rating: int = Field(default=0, ge=0, le=5)
    has_wifi: bool = False
    facilities: list[FacilityInput] = Field(default_factory=list)


class Hotel(BaseModel):
    id: int
    name: str
    description: Annotated[str | None, SanitizeHTML()] = None
    address: str = ""
    city: str = ""
    rating: int = 0
    has_wifi: bool = False
    facilities: list[Facility] = Field(default_factory=list)
