"""
Typed errors raised by the extraction service.
Every failure leaving the service is one of these, with an explicit status code.
"""
from typing import Optional


class ExtractionServiceError(Exception):
    """Base error with HTTP status and retry hint."""
    status_code: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable


class InvalidURLError(ExtractionServiceError):
    status_code = 400

    def __init__(self, message: str = "Invalid URL"):
        super().__init__(message)


class ExtractionFailedError(ExtractionServiceError):
    """Model output could not be turned into ExtractedContent."""
    status_code = 422


class RateLimitedError(ExtractionServiceError):
    status_code = 429
    retryable = True

    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class ServiceUnavailableError(ExtractionServiceError):
    status_code = 503
    retryable = True


class UpstreamError(ExtractionServiceError):
    """LLM provider or unexpected internal failure (500/502/504)."""
    status_code = 500
    retryable = True
