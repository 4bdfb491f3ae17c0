# Client package
from smartlink.client.api import ExtractionAPI
from smartlink.client.errors import (
    ExtractionError,
    ExtractionErrorType,
    categorize_extraction_error,
    get_error_message,
    needs_manual_entry,
    should_retry,
)
from smartlink.client.extraction import ContentExtraction, ExtractionState
from smartlink.client.request_cache import RequestCache

__all__ = [
    "ExtractionAPI",
    "ExtractionError",
    "ExtractionErrorType",
    "categorize_extraction_error",
    "get_error_message",
    "needs_manual_entry",
    "should_retry",
    "ContentExtraction",
    "ExtractionState",
    "RequestCache",
]
