"""
Schema validation for raw model output.
"""
from typing import Any, List, Literal, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ValidationError, field_validator

ALLOWED_SCHEMES = ("http", "https")


class SchemaValidationError(Exception):
    """Model output does not match the extraction schema."""

    def __init__(self, message: str, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.errors = errors or []


def _is_well_formed_url(value: str, schemes: Optional[tuple] = None) -> bool:
    if not isinstance(value, str) or not value:
        return False
    if any(ch.isspace() for ch in value):
        return False
    try:
        parts = urlsplit(value)
        hostname = parts.hostname
    except ValueError:
        return False
    if not parts.scheme or not hostname:
        return False
    if schemes is not None and parts.scheme.lower() not in schemes:
        return False
    return True


def is_valid_url(url: Any) -> bool:
    """True for absolute http/https URLs with a host."""
    return _is_well_formed_url(url, ALLOWED_SCHEMES)


class LLMExtraction(BaseModel):
    """Shape of the extract_content function arguments."""
    title: str
    author: Optional[str] = None
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    suggestedCategory: Optional[Literal["article", "book", "video", "tool", "other"]] = None
    tags: Optional[List[str]] = None
    publicationDate: Optional[str] = None
    contentType: Optional[Literal["article", "video", "book", "paper", "other"]] = None

    class Config:
        extra = "ignore"

    @field_validator("title")
    @classmethod
    def title_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Title is required")
        return v.strip()

    @field_validator("imageUrl")
    @classmethod
    def image_url_must_be_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _is_well_formed_url(v):
            raise ValueError("imageUrl must be a valid URL")
        return v


def validate_extraction(raw: Any, schema: type = LLMExtraction) -> BaseModel:
    """
    Validate parsed model output against the extraction schema.

    Raises:
        SchemaValidationError: on any mismatch (missing title, bad enum, etc.)
    """
    if not isinstance(raw, dict):
        raise SchemaValidationError(
            f"Expected a JSON object, got {type(raw).__name__}"
        )
    try:
        return schema.model_validate(raw)
    except ValidationError as e:
        raise SchemaValidationError("Invalid response format", errors=e.errors()) from e
