"""
Search Errors

Exceptions raised by the documentation search core, and the FastAPI
handlers that turn them into JSON responses.

Response Rules
--------------
- An unknown version answers 404 and lists the versions that exist.
- Anything unexpected answers a fixed 500 body; the traceback stays in
  the server log.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from fastapi import Request
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from ..versions.models import VersionInfo

logger = logging.getLogger("docs_search.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class DocsSearchError(RuntimeError):
    """Base error for documentation search failures."""


class SiteRequestError(DocsSearchError):
    """Raised when a remote request fails after all retry attempts."""

    def __init__(self, url: str, cause: Exception) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Request to {url} failed: {type(cause).__name__}: {cause}")


class VersionNotFoundError(DocsSearchError):
    """
    Raised when an explicitly requested version does not exist on a
    versioned site that publishes at least one version.
    """

    def __init__(
        self,
        requested_version: str,
        available_versions: List["VersionInfo"],
    ) -> None:
        self.requested_version = requested_version
        self.available_versions = list(available_versions)
        available = ", ".join(sorted(v.version for v in self.available_versions))
        super().__init__(
            f"Version '{requested_version}' not found. Available versions: {available}"
        )


class IndexLoadError(DocsSearchError):
    """Raised when a search index cannot be fetched or built."""

    def __init__(
        self,
        base_url: str,
        version: Optional[str],
        cause: Exception,
    ) -> None:
        self.base_url = base_url
        self.version = version
        self.cause = cause
        suffix = f" (version: {version})" if version else ""
        super().__init__(
            f"Failed to load search index for {base_url}{suffix}: {cause}"
        )


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def version_not_found_handler(
    request: Request,
    exc: VersionNotFoundError,
) -> JSONResponse:
    """
    Report an unknown version together with the versions that do exist,
    so the caller can retry with one of them.
    """
    logger.info(
        "Unknown version requested: %s %s (%s)",
        request.method,
        request.url.path,
        exc.requested_version,
    )

    payload: Dict[str, Any] = {
        "error": str(exc),
        "requestedVersion": exc.requested_version,
        "availableVersions": [
            {
                "version": v.version,
                "title": v.title,
                "aliases": sorted(v.aliases),
            }
            for v in exc.available_versions
        ],
    }

    return JSONResponse(status_code=404, content=payload)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Last-resort handler: log the traceback, answer a fixed 500 body.

    Parameters
    ----------
    request : Request
        Request whose handling failed.

    exc : Exception
        Exception that escaped the route.
    """
    logger.exception(
        "Request failed: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "detail": "Internal server error",
        },
    )
