# smartlink/ai/llm_client.py
"""LLM client - structured metadata extraction through a forced function call."""
import json
import logging
from typing import Any, Optional

from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)
from pydantic import BaseModel

from smartlink.ai.prompts import EXTRACT_FUNCTION_NAME, SYSTEM_PROMPT, build_tools
from smartlink.ai.schemas import LLMExtraction, SchemaValidationError, validate_extraction
from smartlink.config import OpenAIConfig

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base error for LLM calls."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        retryable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retryable = retryable


class LLMResponseError(LLMError):
    """Model answered without usable function-call arguments."""


class LLMValidationError(LLMError):
    """Function-call arguments failed schema validation."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message, status_code=422, retryable=False)
        self.errors = errors or []


class LLMRateLimitError(LLMError):
    """Provider returned HTTP 429."""

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, status_code=429, retryable=True)


class LLMTimeoutError(LLMError):
    """Provider did not answer within the configured timeout."""

    def __init__(self, message: str = "LLM request timed out"):
        super().__init__(message, status_code=504, retryable=True)


class LLMClient:
    """Wraps AsyncOpenAI chat completions for metadata extraction."""

    def __init__(self, openai_config: OpenAIConfig, client: Optional[AsyncOpenAI] = None):
        if not openai_config.api_key:
            raise ValueError("OpenAI API key is required")

        self.model = openai_config.model
        self.temperature = openai_config.temperature
        self.max_tokens = openai_config.max_tokens
        self.client = client or AsyncOpenAI(
            api_key=openai_config.api_key,
            timeout=openai_config.timeout,
            max_retries=openai_config.max_retries,
        )

    async def extract_web_content(
        self,
        url: str,
        prompt_text: str,
        schema: type = LLMExtraction
    ) -> BaseModel:
        """
        Ask the model for page metadata and validate the answer.

        Args:
            url: Page to describe
            prompt_text: Extraction instructions (see prompts.build_extraction_prompt)
            schema: Pydantic model the function arguments must satisfy

        Returns:
            Validated schema instance

        Raises:
            LLMError and subclasses, classified by cause
        """
        logger.info(f"Starting OpenAI content extraction: url={url} model={self.model}")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": f"{prompt_text}\n\nURL: {url}"}
                ],
                tools=build_tools(),
                tool_choice={"type": "function", "function": {"name": EXTRACT_FUNCTION_NAME}},
            )
        except RateLimitError as e:
            logger.warning(f"OpenAI rate limit: {e}")
            raise LLMRateLimitError() from e
        except APITimeoutError as e:
            logger.error(f"OpenAI request timed out: url={url}")
            raise LLMTimeoutError() from e
        except APIConnectionError as e:
            logger.error(f"OpenAI connection error: {e}")
            raise LLMError("OpenAI connection error", status_code=502, retryable=True) from e
        except APIStatusError as e:
            logger.error(f"OpenAI API error: status={e.status_code} message={e.message}")
            if e.status_code == 429:
                raise LLMRateLimitError() from e
            raise LLMError("OpenAI API error") from e
        except APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise LLMError("OpenAI API error") from e

        raw = self._parse_arguments(response)

        try:
            result = validate_extraction(raw, schema)
        except SchemaValidationError as e:
            logger.error(f"OpenAI response validation failed: errors={e.errors} response={raw}")
            raise LLMValidationError("Invalid response format", errors=e.errors) from e

        logger.info(f"Successfully extracted content: url={url} title={getattr(result, 'title', None)!r}")
        return result

    def _parse_arguments(self, response: Any) -> Any:
        """Pull the function-call arguments out of the completion as JSON."""
        try:
            message = response.choices[0].message
        except (AttributeError, IndexError, TypeError):
            raise LLMResponseError("No function call in response")

        arguments = None
        tool_calls = getattr(message, "tool_calls", None) or []
        for call in tool_calls:
            function = getattr(call, "function", None)
            if function is not None and function.name == EXTRACT_FUNCTION_NAME:
                arguments = function.arguments
                break

        if not arguments:
            raise LLMResponseError("No function call in response")

        try:
            return json.loads(arguments)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse function arguments: {e}")
            raise LLMResponseError("Malformed function arguments in response") from e

    async def test_connection(self) -> bool:
        """Check that the API key works. Never raises."""
        try:
            response = await self.client.models.list()
            return len(response.data) > 0
        except Exception as e:
            logger.error(f"OpenAI connection test failed: {e}")
            return False
