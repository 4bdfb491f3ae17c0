"""
Pydantic schemas (DTOs) for API request/response.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from smartlink.ai.schemas import is_valid_url
from smartlink.config import MAX_URL_LENGTH


# ============== Extraction Schemas ==============

class ExtractOptions(BaseModel):
    forceRefresh: Optional[bool] = None


class ExtractMetadataRequest(BaseModel):
    """Body of POST /api/library/extract-metadata."""
    url: str = Field(..., max_length=MAX_URL_LENGTH)
    forceRefresh: bool = False
    options: Optional[ExtractOptions] = None

    @field_validator("url")
    @classmethod
    def url_must_be_http(cls, v: str) -> str:
        if not is_valid_url(v):
            raise ValueError("URL must be a valid http or https URL")
        return v

    @property
    def force_refresh(self) -> bool:
        """Top-level flag or options.forceRefresh, whichever is set."""
        if self.forceRefresh:
            return True
        return bool(self.options and self.options.forceRefresh)


class ExtractMetadataResponse(BaseModel):
    """Successful extraction."""
    success: bool = True
    data: Dict[str, Any]


class ErrorResponse(BaseModel):
    """Every error leaving the API has this shape."""
    success: bool = False
    message: str
    error: Optional[str] = None
    retryable: bool = False


class HealthResponse(BaseModel):
    status: str
    llm_configured: bool
    cache_backend: str
