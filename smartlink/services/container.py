"""
Service container - builds and tears down the extraction stack.
Owned by the FastAPI lifespan, handed to routes through app.state.
"""
import logging
from typing import Optional

from smartlink.ai.llm_client import LLMClient
from smartlink.config import Config
from smartlink.services.cache import Cache, NullCache, create_cache
from smartlink.services.content_extraction import ContentExtractionService
from smartlink.services.page_fetcher import PageFetcher

logger = logging.getLogger(__name__)


class ExtractionServices:
    """Holds the cache, LLM client and extraction service for one app."""

    def __init__(
        self,
        cache: Optional[Cache] = None,
        extraction_service: Optional[ContentExtractionService] = None
    ):
        self.cache = cache or NullCache()
        self.extraction_service = extraction_service

    @classmethod
    def from_config(cls, app_config: Config) -> "ExtractionServices":
        cache = create_cache(app_config)

        extraction_service = None
        if app_config.openai.api_key:
            llm_client = LLMClient(app_config.openai)
            page_fetcher = PageFetcher() if app_config.extraction.fetch_page else None
            extraction_service = ContentExtractionService(
                llm_client=llm_client,
                cache=cache,
                cache_ttl=app_config.extraction.cache_ttl,
                page_fetcher=page_fetcher,
            )
        else:
            logger.warning("OPENAI_API_KEY is not set, extraction endpoint will return 503")

        return cls(cache=cache, extraction_service=extraction_service)

    @property
    def llm_configured(self) -> bool:
        return self.extraction_service is not None

    async def init(self) -> None:
        logger.info(
            f"Extraction services ready: cache={self.cache.backend} "
            f"llm_configured={self.llm_configured}"
        )

    async def shutdown(self) -> None:
        await self.cache.close()
        logger.info("Extraction services stopped")
