# smartlink/services/content_extraction.py
"""Content Extraction Service - URL in, cached ExtractedContent out."""
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from smartlink.ai.llm_client import (
    LLMClient,
    LLMError,
    LLMRateLimitError,
    LLMTimeoutError,
    LLMValidationError,
)
from smartlink.ai.prompts import CATEGORIES, EXTRACTION_PROMPT_VERSION, build_extraction_prompt
from smartlink.ai.schemas import is_valid_url
from smartlink.services.cache import Cache, NullCache
from smartlink.services.errors import (
    ExtractionFailedError,
    ExtractionServiceError,
    InvalidURLError,
    RateLimitedError,
    UpstreamError,
)
from smartlink.services.extracted_content import (
    ExtractedContent,
    ExtractionMetadata,
    parse_datetime,
)
from smartlink.services.page_fetcher import PageFetcher
from smartlink.services.url_normalizer import cache_key, normalize_url

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 3600  # 1 hour
DEFAULT_CONFIDENCE = 0.9


class ContentExtractionService:
    """
    Extracts metadata from a URL using the LLM client.

    Flow:
    1. VALIDATE - http/https URL or InvalidURLError (400)
    2. CACHE    - lookup by normalized URL unless force_refresh
    3. EXTRACT  - LLM call with the categories-aware prompt
    4. MAP      - build ExtractedContent, stamp extraction metadata
    5. STORE    - write to cache (failures are swallowed by the cache)
    """

    def __init__(
        self,
        llm_client: LLMClient,
        cache: Optional[Cache] = None,
        cache_ttl: int = DEFAULT_CACHE_TTL,
        page_fetcher: Optional[PageFetcher] = None,
        prompt_version: str = EXTRACTION_PROMPT_VERSION
    ):
        self.llm_client = llm_client
        self.cache = cache or NullCache()
        self.cache_ttl = cache_ttl or DEFAULT_CACHE_TTL
        self.page_fetcher = page_fetcher
        self.prompt_version = prompt_version

    async def extract_content(self, url: str, force_refresh: bool = False) -> ExtractedContent:
        """
        Extract metadata from a URL.

        Args:
            url: The URL to extract content from
            force_refresh: Skip the cache lookup (result is still cached)

        Returns:
            ExtractedContent

        Raises:
            ExtractionServiceError: typed, with status code (400/422/429/5xx)
        """
        try:
            return await self._extract(url, force_refresh)
        except ExtractionServiceError:
            raise
        except LLMValidationError as e:
            logger.warning(f"Model output rejected for {url}: {e.errors}")
            raise ExtractionFailedError("Invalid response format") from e
        except LLMRateLimitError as e:
            raise RateLimitedError("Rate limit exceeded") from e
        except LLMTimeoutError as e:
            raise UpstreamError("LLM request timed out", status_code=504) from e
        except LLMError as e:
            logger.error(f"Content extraction failed: url={url} error={e.message}")
            status_code = 502 if e.status_code == 502 else 500
            raise UpstreamError("Failed to extract content", status_code=status_code) from e
        except Exception as e:
            logger.exception(f"Content extraction failed: url={url} error={e}")
            raise UpstreamError("Failed to extract content") from e

    async def _extract(self, url: str, force_refresh: bool) -> ExtractedContent:
        if not is_valid_url(url):
            raise InvalidURLError()

        normalized_url = normalize_url(url)
        key = cache_key(url)

        if not force_refresh:
            cached = await self._get_cached(key)
            if cached is not None:
                logger.info(f"Returning cached extraction: url={normalized_url}")
                return cached

        prompt = await self._build_prompt(url)
        extracted = await self.llm_client.extract_web_content(url, prompt)

        content = ExtractedContent(
            title=extracted.title,
            author=extracted.author,
            description=extracted.description,
            image_url=extracted.imageUrl,
            suggested_category=extracted.suggestedCategory,
            tags=tuple(extracted.tags or ()),
            publication_date=parse_datetime(extracted.publicationDate),
            content_type=extracted.contentType,
            extraction_metadata=ExtractionMetadata(
                confidence=DEFAULT_CONFIDENCE,
                extracted_at=datetime.now(timezone.utc),
                llm_model=self.llm_client.model,
                version=self.prompt_version,
            ),
        )

        await self.cache.set(key, json.dumps(content.to_dict()), self.cache_ttl)
        return content

    async def _get_cached(self, key: str) -> Optional[ExtractedContent]:
        cached = await self.cache.get(key)
        if not cached:
            return None
        try:
            return ExtractedContent.from_dict(json.loads(cached))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            # Broken entry - treat as a miss, it gets overwritten below
            logger.warning(f"Discarding malformed cache entry {key}: {e}")
            return None

    async def _build_prompt(self, url: str) -> str:
        page_context = None
        if self.page_fetcher is not None:
            page = await self.page_fetcher.fetch(url)
            if page is not None:
                page_context = page.to_prompt()
        return build_extraction_prompt(CATEGORIES, page_context)

    async def validate_url(self, url: str) -> bool:
        return is_valid_url(url)
