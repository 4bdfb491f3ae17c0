"""
Content extraction controller for form inputs.

Debounces URL input, shares requests through RequestCache and keeps
loading/data/error state. Only the most recent request may change state.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from smartlink.ai.schemas import is_valid_url
from smartlink.client.api import ExtractionAPI
from smartlink.client.errors import ExtractionError, categorize_extraction_error
from smartlink.client.request_cache import RequestCache
from smartlink.services.extracted_content import ExtractedContent

logger = logging.getLogger(__name__)

AUTO_DEBOUNCE_DELAY = 0.5
INPUT_DEBOUNCE_DELAY = 1.0


class ExtractionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class CancellationToken:
    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class _ActiveRequest:
    """One logical request: its debounce timer and its cancellation token."""

    def __init__(self, url: str):
        self.url = url
        self.token = CancellationToken()
        self.debounce_task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        self.token.cancel()
        task = self.debounce_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()


class ContentExtraction:
    """
    States: IDLE -> LOADING -> SUCCESS | ERROR; reset() goes back to IDLE.

    set_url() is the debounced entry point for typed input, extract() runs
    immediately. Starting a request cancels the previous one's token, so a
    late answer for an old URL is dropped. The shared network task itself
    is never cancelled: other consumers of the cache may be waiting on it.
    """

    def __init__(
        self,
        api: ExtractionAPI,
        cache: Optional[RequestCache] = None,
        debounce_delay: float = AUTO_DEBOUNCE_DELAY,
        on_success: Optional[Callable[[ExtractedContent], None]] = None,
        on_error: Optional[Callable[[ExtractionError], None]] = None
    ):
        self.api = api
        # an injected cache is shared; its owner runs the sweep
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else RequestCache()
        self.debounce_delay = debounce_delay
        self.on_success = on_success
        self.on_error = on_error

        self.state = ExtractionState.IDLE
        self.data: Optional[ExtractedContent] = None
        self.error: Optional[ExtractionError] = None
        self.last_url: Optional[str] = None

        self._pending: Optional[_ActiveRequest] = None
        self._active: Optional[_ActiveRequest] = None
        self._retry_url: Optional[str] = None

    @classmethod
    def for_input(cls, api: ExtractionAPI, **kwargs) -> "ContentExtraction":
        """Variant for interactive text inputs (longer debounce)."""
        kwargs.setdefault("debounce_delay", INPUT_DEBOUNCE_DELAY)
        return cls(api, **kwargs)

    @property
    def loading(self) -> bool:
        return self.state == ExtractionState.LOADING

    # ============== Debounced input ==============

    def set_url(self, url: str) -> asyncio.Task:
        """Restart the debounce timer for url. Returns the timer task."""
        if self._pending is not None:
            self._pending.cancel()

        request = _ActiveRequest(url)
        request.debounce_task = asyncio.ensure_future(self._debounced(request))
        self._pending = request
        return request.debounce_task

    async def _debounced(self, request: _ActiveRequest) -> None:
        await asyncio.sleep(self.debounce_delay)
        if request.token.cancelled:
            return
        if self._pending is request:
            self._pending = None

        url = request.url.strip()
        if not url:
            self.reset()
            return
        if not is_valid_url(url):
            logger.debug(f"Ignoring invalid URL input: {url!r}")
            return
        if url == self.last_url:
            return

        request.url = url
        await self._start(request, force_refresh=False)

    # ============== Direct calls ==============

    async def extract(self, url: str, force_refresh: bool = False) -> Optional[ExtractedContent]:
        """Extract now. Returns None if this request was superseded or failed."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        return await self._start(_ActiveRequest(url), force_refresh)

    async def retry(self) -> Optional[ExtractedContent]:
        """Re-run the last attempted URL with a fresh call."""
        if not self._retry_url:
            return None
        return await self.extract(self._retry_url, force_refresh=True)

    def reset(self) -> None:
        if self._active is not None:
            self._active.cancel()
            self._active = None
        self.state = ExtractionState.IDLE
        self.data = None
        self.error = None
        self.last_url = None

    def close(self) -> None:
        """Cancel pending and active work. A shared cache is left alone."""
        for request in (self._pending, self._active):
            if request is not None:
                request.cancel()
        self._pending = None
        self._active = None
        if self._owns_cache:
            self.cache.dispose()

    # ============== Internals ==============

    async def _start(self, request: _ActiveRequest, force_refresh: bool) -> Optional[ExtractedContent]:
        if self._owns_cache and not self.cache.running:
            self.cache.start()
        if self._active is not None:
            self._active.cancel()
        self._active = request

        self.state = ExtractionState.LOADING
        self.error = None
        self.last_url = request.url
        self._retry_url = request.url

        task = self._shared_task(request.url, force_refresh)

        try:
            result = await asyncio.shield(task)
        except asyncio.CancelledError:
            if request.token.cancelled:
                return None
            raise
        except Exception as e:
            if request.token.cancelled:
                return None
            self._fail(categorize_extraction_error(e))
            return None

        if request.token.cancelled:
            logger.debug(f"Discarding superseded result for {request.url}")
            return None

        self.data = result
        self.state = ExtractionState.SUCCESS
        if self.on_success:
            self.on_success(result)
        return result

    def _shared_task(self, url: str, force_refresh: bool) -> asyncio.Task:
        if not force_refresh:
            task = self.cache.get(url)
            if task is not None:
                return task
        else:
            self.cache.delete(url)

        task = asyncio.ensure_future(self.api.extract_metadata(url, force_refresh))
        # cached before it settles so concurrent callers collapse onto it
        self.cache.set(url, task)
        task.add_done_callback(lambda t: self._evict_failed(url, t))
        return task

    def _evict_failed(self, url: str, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is not None:
            self.cache.delete(url, task)

    def _fail(self, error: ExtractionError) -> None:
        logger.info(f"Extraction failed: type={error.type.value} status={error.status_code}")
        self.error = error
        self.data = None
        self.state = ExtractionState.ERROR
        # allow the same URL to be entered again
        self.last_url = None
        if self.on_error:
            self.on_error(error)
