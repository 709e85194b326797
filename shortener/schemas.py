"""Pydantic schemas for service results and HTTP payloads.

Schema Hierarchy
=================
::
    UrlValue (Output of add/query)
    └─ value: str

    MappingRecord (Output of info)
    ├─ long_url: str    (JSON "longUrl")
    ├─ short_url: str   (JSON "shortUrl")
    ├─ count: int
    └─ is_active: bool  (JSON "isActive")

    CachedMapping (Redis payload)
    ├─ short_url: str
    └─ long_url: str

    TextScanRequest / TextScanResponse (free-text shortening)
    HealthResponse / ErrorResponse

Key Behaviours
===============
- MappingRecord is built straight from the ORM row (from_attributes).
- JSON output uses camelCase aliases; Python code uses snake_case names.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shortener.enums import HealthStatus

__all__ = [
    "UrlValue",
    "MappingRecord",
    "CachedMapping",
    "TextScanRequest",
    "TextScanResponse",
    "HealthResponse",
    "ErrorResponse",
]


class UrlValue(BaseModel):
    value: str


class MappingRecord(BaseModel):
    long_url: str
    short_url: str
    count: int = Field(..., ge=0)
    is_active: bool

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CachedMapping(BaseModel):
    """Redis cache payload for an active short key."""

    short_url: str
    long_url: str

    model_config = {"from_attributes": True}


class TextScanRequest(BaseModel):
    text: str


class TextScanResponse(BaseModel):
    text: str
    shortened: int = Field(0, description="Number of URL occurrences replaced")
    failed: list[str] = Field(default_factory=list, description="URLs that could not be shortened")


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class ErrorResponse(BaseModel):
    status: int
    code: str
    message: str
