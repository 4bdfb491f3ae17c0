# AI package
from smartlink.ai.llm_client import (
    LLMClient,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    LLMTimeoutError,
    LLMValidationError,
)
from smartlink.ai.prompts import EXTRACTION_PROMPT_VERSION, build_extraction_prompt
from smartlink.ai.schemas import LLMExtraction, SchemaValidationError, is_valid_url, validate_extraction

__all__ = [
    "LLMClient",
    "LLMError",
    "LLMRateLimitError",
    "LLMResponseError",
    "LLMTimeoutError",
    "LLMValidationError",
    "EXTRACTION_PROMPT_VERSION",
    "build_extraction_prompt",
    "LLMExtraction",
    "SchemaValidationError",
    "is_valid_url",
    "validate_extraction",
]
