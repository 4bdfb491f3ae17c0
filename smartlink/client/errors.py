"""
Error classification for content extraction on the client side.
"""
from enum import Enum
from typing import Optional

import httpx


class ExtractionErrorType(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_URL = "INVALID_URL"
    RATE_LIMITED = "RATE_LIMITED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    UNAUTHORIZED = "UNAUTHORIZED"
    SERVER_ERROR = "SERVER_ERROR"
    UNKNOWN = "UNKNOWN"


class ExtractionError(Exception):
    """Classified extraction failure, safe to show to the user."""

    def __init__(
        self,
        message: str,
        type: ExtractionErrorType,
        status_code: Optional[int] = None,
        retryable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.type = type
        self.status_code = status_code
        self.retryable = retryable

    def __repr__(self) -> str:
        return f"ExtractionError({self.type.value}, status={self.status_code}, retryable={self.retryable})"


def _response_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or "")
    return ""


def categorize_extraction_error(error: BaseException) -> ExtractionError:
    """
    Map any failure of an extraction call to an ExtractionError.

    Transport failures (including timeouts) are NETWORK_ERROR; HTTP errors are
    classified by status; everything else is UNKNOWN and retryable.
    """
    if isinstance(error, ExtractionError):
        return error

    if isinstance(error, httpx.TransportError):
        return ExtractionError(
            "Network connection failed. Please check your internet connection.",
            ExtractionErrorType.NETWORK_ERROR,
            None,
            True
        )

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        message = _response_message(error.response) or str(error)

        if status == 400 and "Invalid URL" in message:
            return ExtractionError(
                "The URL provided is invalid or unsupported.",
                ExtractionErrorType.INVALID_URL,
                status,
                False
            )
        if status == 401:
            return ExtractionError(
                "Authentication required. Please log in again.",
                ExtractionErrorType.UNAUTHORIZED,
                status,
                False
            )
        if status == 429:
            return ExtractionError(
                "Too many requests. Please wait a moment before trying again.",
                ExtractionErrorType.RATE_LIMITED,
                status,
                True
            )
        if status == 422:
            return ExtractionError(
                "Unable to extract metadata from this URL. Please fill in the details manually.",
                ExtractionErrorType.EXTRACTION_FAILED,
                status,
                False
            )
        if status in (500, 502, 503, 504):
            return ExtractionError(
                "Server error occurred. Please try again later.",
                ExtractionErrorType.SERVER_ERROR,
                status,
                True
            )

    return ExtractionError(
        str(error) or "An unexpected error occurred.",
        ExtractionErrorType.UNKNOWN,
        None,
        True
    )


def get_error_message(error: ExtractionError) -> str:
    return error.message


def should_retry(error: ExtractionError) -> bool:
    return error.retryable


def needs_manual_entry(error: ExtractionError) -> bool:
    """Non-retryable content problems: the user should fill the fields in by hand."""
    return error.type in (ExtractionErrorType.INVALID_URL, ExtractionErrorType.EXTRACTION_FAILED)
