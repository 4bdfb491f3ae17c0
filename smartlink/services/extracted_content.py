"""
ExtractedContent - result of extracting metadata from a URL.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# Older servers emitted this misspelled key; accepted on read only.
LEGACY_CATEGORY_KEY = "suggestedCategor"


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 string (trailing Z allowed). Returns None if unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except (ValueError, TypeError) as e:
        logger.warning(f"Failed to parse date '{value}': {e}")
        return None


@dataclass(frozen=True)
class ExtractionMetadata:
    """Stamped by the extraction service, never by the model."""
    confidence: float
    extracted_at: datetime
    llm_model: str
    version: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence": self.confidence,
            "extractedAt": self.extracted_at.isoformat(),
            "llmModel": self.llm_model,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionMetadata":
        extracted_at = parse_datetime(data.get("extractedAt"))
        if extracted_at is None:
            raise ValueError("extractionMetadata.extractedAt is missing or invalid")
        return cls(
            confidence=float(data["confidence"]),
            extracted_at=extracted_at,
            llm_model=str(data["llmModel"]),
            version=str(data["version"]),
        )


@dataclass(frozen=True)
class ExtractedContent:
    """Metadata extracted from a web page."""
    title: str
    extraction_metadata: ExtractionMetadata
    author: Optional[str] = None
    description: Optional[str] = None  # ~200 символов по промпту
    image_url: Optional[str] = None
    suggested_category: Optional[str] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)
    publication_date: Optional[datetime] = None
    content_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire/cache form: camelCase keys, ISO dates, absent optionals omitted."""
        data: Dict[str, Any] = {"title": self.title}
        optional = {
            "author": self.author,
            "description": self.description,
            "imageUrl": self.image_url,
            "suggestedCategory": self.suggested_category,
            "contentType": self.content_type,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if self.tags:
            data["tags"] = list(self.tags)
        if self.publication_date is not None:
            data["publicationDate"] = self.publication_date.isoformat()
        data["extractionMetadata"] = self.extraction_metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractedContent":
        """Inverse of to_dict. Raises KeyError/ValueError on malformed input."""
        title = data.get("title")
        if not title:
            raise ValueError("title is required")

        category = data.get("suggestedCategory")
        if category is None:
            category = data.get(LEGACY_CATEGORY_KEY)

        return cls(
            title=title,
            author=data.get("author"),
            description=data.get("description"),
            image_url=data.get("imageUrl"),
            suggested_category=category,
            tags=tuple(data.get("tags") or ()),
            publication_date=parse_datetime(data.get("publicationDate")),
            content_type=data.get("contentType"),
            extraction_metadata=ExtractionMetadata.from_dict(data["extractionMetadata"]),
        )
