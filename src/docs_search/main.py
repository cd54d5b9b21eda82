"""
HTTP Application

Builds the FastAPI app that hosts documentation search: exception
handlers, the search, version and cache routers, and lifecycle logging.
``create_app()`` returns a fresh instance so tests can install their own
dependency overrides.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from .api import health_routes, search_routes, version_routes
from .config import settings
from .core.errors import (
    VersionNotFoundError,
    unhandled_exception_handler,
    version_not_found_handler,
)

logger = logging.getLogger("docs_search.app")


def create_app() -> FastAPI:
    """
    Assemble the documentation search application.

    Returns
    -------
    FastAPI
        App with every router and error handler registered.
    """
    app = FastAPI(
        title="docs-search",
        description="Version-aware full-text search over MkDocs sites.",
        version="1.0.0",
    )

    # --------------------------------------------------------------
    # Errors
    # --------------------------------------------------------------

    app.add_exception_handler(VersionNotFoundError, version_not_found_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Routes
    # --------------------------------------------------------------

    for module in (health_routes, search_routes, version_routes):
        app.include_router(module.router)

    # --------------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------------

    @app.on_event("startup")
    async def _log_configuration() -> None:
        if settings.docs_base_url is None:
            logger.warning("DOCS_BASE_URL is not set; search routes will fail")
            return
        logger.info(
            "docs-search ready for %s (cache: %d entries / %sMB, ttl %s min)",
            settings.docs_base_url,
            settings.cache_max_size,
            settings.cache_max_memory_mb,
            settings.cache_ttl_minutes,
        )

    @app.on_event("shutdown")
    async def _log_shutdown() -> None:
        logger.info("docs-search stopped")

    return app


app = create_app()
