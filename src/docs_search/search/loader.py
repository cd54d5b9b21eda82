"""
Index Loader

Coalesces concurrent loads of the same index. The first caller for a key
starts the load as a task; callers arriving while it runs await that
same task instead of repeating the fetch and build.

The shared task is shielded from caller cancellation, so a caller-level
timeout abandons the wait without aborting a load other callers (or the
cache) still depend on.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger("docs_search.loader")

T = TypeVar("T")


class IndexLoader(Generic[T]):
    """
    Single-flight coordinator keyed by ``<base_url>:<version>``.
    """

    def __init__(self, base_url: str) -> None:
        self._base_url = base_url
        self._inflight: Dict[str, "asyncio.Task[T]"] = {}

    def _key(self, version: Optional[str]) -> str:
        return f"{self._base_url}:{version or 'default'}"

    async def load(
        self,
        version: Optional[str],
        loader: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run ``loader`` for ``version`` unless a load is already in flight,
        and return its result.

        Errors raised by ``loader`` propagate to every waiting caller; the
        key is released so the next call starts a fresh load.
        """
        key = self._key(version)
        task = self._inflight.get(key)

        if task is None:
            task = asyncio.ensure_future(self._execute(key, loader))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            logger.debug("Index load already in progress for key: %s, waiting", key)

        return await asyncio.shield(task)

    def _release(self, key: str, task: "asyncio.Task[T]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception as retrieved when every waiter has gone.
            task.exception()

    async def _execute(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        logger.debug("Starting index load for key: %s", key)
        started = time.perf_counter()
        try:
            result = await loader()
        except Exception as exc:
            logger.error("Index load failed for key: %s: %s", key, exc)
            raise
        logger.debug(
            "Index load successful for key: %s (took %.0fms)",
            key,
            (time.perf_counter() - started) * 1000,
        )
        return result

    def is_loading(self, version: Optional[str] = None) -> bool:
        return self._key(version) in self._inflight

    def loading_keys(self) -> List[str]:
        return list(self._inflight)

    def clear_loading_state(self) -> None:
        self._inflight.clear()
        logger.debug("Cleared all loading state")
