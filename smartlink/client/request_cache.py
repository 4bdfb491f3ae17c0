"""
Request cache - shares in-flight and recent extraction tasks by URL.
"""
import asyncio
import logging
import time
from typing import Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

DEFAULT_TTL = 5 * 60  # 5 минут
SWEEP_INTERVAL = 60


class RequestCache:
    """
    URL -> asyncio.Task. Entries live `ttl` seconds from insertion.

    Failed tasks are not evicted here: whoever awaits them deletes the entry.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        sweep_interval: int = SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self.clock = clock
        self._tasks: Dict[str, asyncio.Task] = {}
        self._created: Dict[str, float] = {}
        self._scheduler: Optional[AsyncIOScheduler] = None

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, url: str) -> bool:
        return self.get(url) is not None

    def get(self, url: str) -> Optional[asyncio.Task]:
        task = self._tasks.get(url)
        if task is None:
            return None
        if self.clock() - self._created[url] > self.ttl:
            self.delete(url)
            return None
        return task

    def set(self, url: str, task: asyncio.Task) -> None:
        self._tasks[url] = task
        self._created[url] = self.clock()

    def delete(self, url: str, task: Optional[asyncio.Task] = None) -> None:
        """Remove url; if task is given, only when it is still the cached one."""
        if task is not None and self._tasks.get(url) is not task:
            return
        self._tasks.pop(url, None)
        self._created.pop(url, None)

    def clear(self) -> None:
        self._tasks.clear()
        self._created.clear()

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self.clock()
        expired = [url for url, created in self._created.items() if now - created > self.ttl]
        for url in expired:
            self.delete(url)
        if expired:
            logger.debug(f"Request cache sweep removed {len(expired)} entries")
        return len(expired)

    async def _sweep_job(self) -> None:
        self.sweep()

    def start(self) -> None:
        """Schedule the periodic sweep. Needs a running event loop."""
        if self._scheduler is not None:
            logger.warning("Request cache sweep already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._sweep_job,
            trigger=IntervalTrigger(seconds=self.sweep_interval),
            id="request_cache_sweep",
            replace_existing=True,
            max_instances=1
        )
        self._scheduler.start()
        logger.debug("Request cache sweep started")

    def dispose(self) -> None:
        """Stop the sweep and forget everything."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.debug("Request cache sweep stopped")
        self.clear()

    @property
    def running(self) -> bool:
        return self._scheduler is not None
