"""
Version Manager

Discovers whether a documentation site is versioned (mike-style
``versions.json`` manifest), fetches and validates the manifest, and
resolves requested version strings, aliases and the implicit "latest" to a
concrete version identifier.

Caching
-------
- Detection results are cached for the lifetime of the manager (or until
  ``invalidate_cache``); versioning topology does not change at runtime.
- The manifest is cached for ``cache_timeout_seconds``.
- Both caches belong to this instance; each is refreshed under its own
  asyncio lock so concurrent requests trigger a single probe.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, List, Optional, Tuple

from .models import DEFAULT_VERSION, LATEST_VERSION, VersionInfo, VersionResolution
from ..config import VersionManagerOptions, settings
from ..core.errors import DocsSearchError, SiteRequestError, VersionNotFoundError
from ..site.client import DocsSiteClient

logger = logging.getLogger("docs_search.versions")


class VersionManager:
    """
    Version detection and resolution for one documentation site.
    """

    def __init__(
        self,
        client: DocsSiteClient,
        options: Optional[VersionManagerOptions] = None,
        manifest_path: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Parameters
        ----------
        client : DocsSiteClient
            Transport bound to the site's base URL. Its retry policy is
            the one applied to every probe issued here.

        options : Optional[VersionManagerOptions]
            Manifest cache timeout. Defaults to ``settings``.

        manifest_path : Optional[str]
            Manifest location relative to the base URL.

        clock : Callable[[], float]
            Monotonic clock in seconds, injectable for tests.
        """
        self._client = client
        self._options = options or VersionManagerOptions.from_settings(settings)
        self._manifest_path = manifest_path or settings.versions_manifest_path
        self._clock = clock

        self._detected: Optional[bool] = None
        self._versions: Optional[Tuple[List[VersionInfo], float]] = None

        self._detect_lock = asyncio.Lock()
        self._versions_lock = asyncio.Lock()

    @property
    def base_url(self) -> str:
        return self._client.base_url

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    async def _get_manifest(self) -> Optional[List[Any]]:
        """
        Fetch the manifest body and return it if it is a JSON array.

        A missing file, a soft-404 page or any non-array body yields None.
        """
        url = self._client.build_url(self._manifest_path)
        try:
            resp = await self._client.fetch(self._manifest_path)
        except SiteRequestError as exc:
            logger.info("Error fetching versions from %s: %s", self.base_url, exc)
            return None

        if not resp.is_success:
            logger.debug("Versions file not available at %s: %d", url, resp.status_code)
            return None

        try:
            raw = resp.json()
        except ValueError as exc:
            logger.info("Invalid JSON in %s: %s", url, exc)
            return None

        if not isinstance(raw, list):
            logger.warning("Invalid versions.json format at %s: expected array", url)
            return None
        return raw

    async def detect_versioning(self) -> bool:
        """
        Return True if the site publishes a version manifest that decodes
        to a JSON array.

        Transport failures and malformed bodies are treated as
        "non-versioned" and cached like any other outcome; they are
        logged, never raised.
        """
        if self._detected is not None:
            return self._detected

        async with self._detect_lock:
            if self._detected is not None:
                return self._detected

            has_versioning = await self._get_manifest() is not None
            logger.debug(
                "Version detection for %s: %s",
                self.base_url,
                "versioned" if has_versioning else "non-versioned",
            )

            self._detected = has_versioning
            return has_versioning

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def _cached_versions(self) -> Optional[List[VersionInfo]]:
        if self._versions is None:
            return None
        data, fetched_at = self._versions
        if self._clock() - fetched_at < self._options.cache_timeout_seconds:
            return data
        return None

    async def fetch_versions(self) -> Optional[List[VersionInfo]]:
        """
        Fetch and validate the version manifest.

        Malformed entries are dropped individually. Returns None when the
        manifest is missing, not a JSON array, or cannot be fetched.
        """
        cached = self._cached_versions()
        if cached is not None:
            return cached

        async with self._versions_lock:
            cached = self._cached_versions()
            if cached is not None:
                return cached

            raw = await self._get_manifest()
            if raw is None:
                return None

            url = self._client.build_url(self._manifest_path)
            versions = [
                info
                for info in (self._parse_entry(entry, url) for entry in raw)
                if info is not None
            ]

            self._versions = (versions, self._clock())
            logger.debug("Fetched %d versions for %s", len(versions), self.base_url)
            return versions

    @staticmethod
    def _parse_entry(entry: Any, url: str) -> Optional[VersionInfo]:
        if not isinstance(entry, dict):
            logger.warning("Invalid version entry in %s: not an object: %r", url, entry)
            return None

        version = entry.get("version")
        title = entry.get("title")
        aliases = entry.get("aliases")

        if not version or not isinstance(version, str):
            logger.warning(
                "Invalid version entry in %s: missing or invalid version field: %r",
                url,
                entry,
            )
            return None
        if not title or not isinstance(title, str):
            logger.warning(
                "Invalid version entry in %s: missing or invalid title field: %r",
                url,
                entry,
            )
            return None
        if aliases is not None and not isinstance(aliases, list):
            logger.warning(
                "Invalid version entry in %s: aliases must be an array: %r",
                url,
                entry,
            )
            return None

        return VersionInfo(
            version=version,
            title=title,
            aliases=frozenset(a for a in (aliases or []) if isinstance(a, str)),
        )

    async def get_available_versions(self) -> Optional[List[VersionInfo]]:
        return await self.fetch_versions()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve_version(self, version: Optional[str] = None) -> VersionResolution:
        """
        Resolve ``version`` to a canonical identifier.

        Order of precedence on a versioned site: implicit/"latest" -> the
        first manifest entry; exact ``version`` match; alias match.
        Non-versioned sites always resolve to ``"default"``.
        """
        try:
            if not await self.detect_versioning():
                return VersionResolution(
                    valid=True,
                    resolved=DEFAULT_VERSION,
                    is_default=True,
                )

            available = await self.fetch_versions()

            if not available:
                return VersionResolution(
                    valid=False,
                    resolved=version or LATEST_VERSION,
                    is_default=False,
                    error="No versions available",
                )

            if not version or version == LATEST_VERSION:
                return VersionResolution(
                    valid=True,
                    resolved=available[0].version,
                    is_default=True,
                    available=available,
                )

            for info in available:
                if info.version == version:
                    return VersionResolution(
                        valid=True,
                        resolved=info.version,
                        available=available,
                    )

            for info in available:
                if version in info.aliases:
                    return VersionResolution(
                        valid=True,
                        resolved=info.version,
                        available=available,
                    )

            names = ", ".join(sorted(v.version for v in available))
            return VersionResolution(
                valid=False,
                resolved=version,
                available=available,
                error=f"Version '{version}' not found. Available versions: {names}",
            )

        except Exception as exc:
            logger.error(
                "Error resolving version '%s' for %s: %s", version, self.base_url, exc
            )
            return VersionResolution(
                valid=False,
                resolved=version or LATEST_VERSION,
                error=f"Version resolution failed: {exc}",
            )

    async def build_versioned_url(self, path: str, version: Optional[str] = None) -> str:
        """
        Build ``<base>/<resolved>/<path>`` for versioned sites and
        ``<base>/<path>`` otherwise.

        Raises
        ------
        VersionNotFoundError
            If the version is unknown and alternatives exist.

        DocsSearchError
            If the version cannot be resolved for any other reason.
        """
        path = path.lstrip("/")

        if not await self.detect_versioning():
            return f"{self.base_url}/{path}"

        resolution = await self.resolve_version(version)
        if not resolution.valid:
            if resolution.available:
                raise VersionNotFoundError(version or LATEST_VERSION, resolution.available)
            raise DocsSearchError(resolution.error or f"Invalid version: {version}")

        return f"{self.base_url}/{resolution.resolved}/{path}"

    def invalidate_cache(self) -> None:
        """Forget detection and manifest results."""
        self._detected = None
        self._versions = None
        logger.debug("Cleared version caches for %s", self.base_url)
