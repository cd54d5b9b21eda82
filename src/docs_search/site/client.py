"""
Documentation Site Client

Thin async HTTP client for a remote MkDocs site. Every request goes
through a tenacity retry policy with exponential backoff; callers receive
either a response (any status below 500) or a SiteRequestError once all
attempts are exhausted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import ClientOptions, settings
from ..core.errors import SiteRequestError

logger = logging.getLogger("docs_search.site")

Sleep = Callable[[float], Awaitable[None]]


class DocsSiteClient:
    """
    Async HTTP client bound to one documentation site.

    A new ``httpx.AsyncClient`` is opened per request. Tests inject an
    ``httpx.MockTransport`` and a no-op ``sleep``.
    """

    def __init__(
        self,
        base_url: str,
        options: Optional[ClientOptions] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.base_url = str(base_url).rstrip("/")
        self.options = options or ClientOptions.from_settings(settings)
        self._transport = transport
        self._sleep = sleep

    def build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _get(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.options.timeout_seconds,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            resp = await client.get(url, headers={"Accept": "application/json"})
        if resp.status_code >= 500:
            resp.raise_for_status()
        return resp

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.options.retry_attempts),
            wait=wait_exponential(multiplier=self.options.retry_base_delay_ms / 1000),
            retry=retry_if_exception_type(httpx.HTTPError),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )

    async def fetch(self, path: str) -> httpx.Response:
        """
        GET ``path`` relative to the site root (or an absolute URL).

        Transport errors and 5xx responses are retried up to
        ``retry_attempts`` times, waiting ``base * 2**(attempt-1)`` ms
        between attempts.

        Raises
        ------
        SiteRequestError
            If every attempt failed.
        """
        url = self.build_url(path)
        try:
            async for attempt in self._retrying():
                with attempt:
                    return await self._get(url)
        except httpx.HTTPError as exc:
            raise SiteRequestError(url, exc) from exc
        raise SiteRequestError(url, RuntimeError("no attempt was made"))

    async def get_json(self, path: str) -> Any:
        """
        Fetch ``path`` and decode its JSON body.

        Raises
        ------
        SiteRequestError
            On transport failure or a non-success status.
        """
        resp = await self.fetch(path)
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SiteRequestError(str(resp.request.url), exc) from exc
        return resp.json()


def _log_retry(state: RetryCallState) -> None:
    logger.debug(
        "Fetch attempt %d failed, retrying in %.0fms: %s",
        state.attempt_number,
        (state.next_action.sleep if state.next_action else 0) * 1000,
        state.outcome.exception() if state.outcome else None,
    )
