"""
Documentation Search Service

Orchestrates one search request end to end:

    resolve version -> cache lookup -> (miss) fetch + build -> rank

One instance serves one documentation site and owns its version manager,
index cache and loader; nothing is shared through module globals.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .cache.index_cache import BYTES_PER_MB, IndexCache, estimate_size
from .config import CacheOptions, ClientOptions, VersionManagerOptions, settings
from .core.errors import IndexLoadError, SiteRequestError, VersionNotFoundError
from .search.builder import IndexBuilder, parse_corpus
from .search.engine import EngineError
from .search.loader import IndexLoader
from .search.models import IndexMetadata, SearchIndexEntry, SearchResponse
from .search.ranking import search_index
from .site.client import DocsSiteClient
from .versions.manager import VersionManager
from .versions.models import DEFAULT_VERSION, LATEST_VERSION, VersionInfo

logger = logging.getLogger("docs_search.service")


class DocsSearchService:
    """
    Version-aware, cache-backed search over one MkDocs site.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[DocsSiteClient] = None,
        version_manager: Optional[VersionManager] = None,
        cache: Optional[IndexCache[SearchIndexEntry]] = None,
        builder: Optional[IndexBuilder] = None,
        cache_options: Optional[CacheOptions] = None,
        version_options: Optional[VersionManagerOptions] = None,
        client_options: Optional[ClientOptions] = None,
        index_path: Optional[str] = None,
        confidence_threshold: Optional[float] = None,
        suggestion_min_results: Optional[int] = None,
    ) -> None:
        """
        Parameters
        ----------
        base_url : str
            Root URL of the documentation site.

        client, version_manager, cache, builder
            Collaborators; each defaults to one built from ``settings``.

        cache_options : Optional[CacheOptions]
            Bounds for the default cache.

        version_options : Optional[VersionManagerOptions]
            Manifest cache timeout for the default version manager.

        client_options : Optional[ClientOptions]
            Retry policy and timeout for the default client.

        index_path : Optional[str]
            Corpus location relative to a (versioned) site root.
        """
        self.base_url = str(base_url).rstrip("/")

        self._client = client or DocsSiteClient(self.base_url, client_options)
        self._versions = version_manager or VersionManager(self._client, version_options)
        self._cache: IndexCache[SearchIndexEntry] = cache or IndexCache(
            cache_options or CacheOptions.from_settings(settings)
        )
        self._builder = builder or IndexBuilder()
        self._loader: IndexLoader[SearchIndexEntry] = IndexLoader(self.base_url)

        self._index_path = (index_path or settings.search_index_path).lstrip("/")
        self._confidence_threshold = (
            confidence_threshold
            if confidence_threshold is not None
            else settings.search_confidence_threshold
        )
        self._suggestion_min_results = (
            suggestion_min_results
            if suggestion_min_results is not None
            else settings.suggestion_min_results
        )

        logger.debug("DocsSearchService initialized for %s", self.base_url)

    @property
    def version_manager(self) -> VersionManager:
        return self._versions

    @property
    def loader(self) -> IndexLoader[SearchIndexEntry]:
        return self._loader

    def _cache_key(self, version: str) -> str:
        return f"{self.base_url}:{version}"

    # ------------------------------------------------------------------
    # Index retrieval
    # ------------------------------------------------------------------

    async def get_search_index(
        self,
        version: Optional[str] = None,
    ) -> Optional[SearchIndexEntry]:
        """
        Return the built index for ``version``, building it on a miss.

        Returns None when no index can be provided: a versioned site with
        no usable manifest, or a failed load.

        Raises
        ------
        VersionNotFoundError
            If ``version`` is unknown and the site lists alternatives.
        """
        if not await self._versions.detect_versioning():
            if version and version != LATEST_VERSION:
                logger.warning(
                    "Version '%s' requested for non-versioned site %s, ignoring version parameter",
                    version,
                    self.base_url,
                )
            return await self._get_or_load(
                DEFAULT_VERSION,
                is_default=True,
                index_url=f"{self.base_url}/{self._index_path}",
            )

        resolution = await self._versions.resolve_version(version)
        if not resolution.valid:
            if resolution.available:
                raise VersionNotFoundError(version or LATEST_VERSION, resolution.available)
            logger.warning("Invalid version requested: %s. %s", version, resolution.error)
            return None

        return await self._get_or_load(
            resolution.resolved,
            is_default=resolution.is_default,
            index_url=f"{self.base_url}/{resolution.resolved}/{self._index_path}",
        )

    async def _get_or_load(
        self,
        version: str,
        is_default: bool,
        index_url: str,
    ) -> Optional[SearchIndexEntry]:
        key = self._cache_key(version)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for search index: %s", key)
            return cached

        async def load() -> SearchIndexEntry:
            entry = await self._load_index(index_url, version, is_default)
            self._cache.set(key, entry)
            logger.debug("Search index loaded and cached: %s", key)
            return entry

        try:
            return await self._loader.load(version, load)
        except IndexLoadError as exc:
            logger.error("%s", exc)
            return None

    async def _load_index(
        self,
        index_url: str,
        version: str,
        is_default: bool,
    ) -> SearchIndexEntry:
        """
        Fetch the corpus at ``index_url`` and build an index entry.

        Raises
        ------
        IndexLoadError
            Wrapping the transport, format or engine failure.
        """
        logger.debug("Loading search index from: %s", index_url)
        try:
            payload = await self._client.get_json(index_url)
            records = parse_corpus(payload)
            built = self._builder.build(records)
        except (SiteRequestError, EngineError, ValueError) as exc:
            raise IndexLoadError(self.base_url, version, exc) from exc

        # Same figure the cache charges for the finished entry
        size = estimate_size(
            {"engine_index": built.engine_index, "documents": built.documents, "metadata": None}
        )
        entry = SearchIndexEntry(
            version=version,
            source_url=index_url,
            engine_index=built.engine_index,
            documents=built.documents,
            metadata=IndexMetadata(
                loaded_at=datetime.now(timezone.utc),
                estimated_size_bytes=size,
                document_count=len(built.documents),
                is_default=is_default,
            ),
        )
        logger.debug(
            "Search index loaded successfully: %d documents, %.2fMB",
            entry.metadata.document_count,
            size / BYTES_PER_MB,
        )
        return entry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        version: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Optional[SearchResponse]:
        """
        Search the documentation for ``query``.

        Returns None when no index is available for ``version``.

        Raises
        ------
        VersionNotFoundError
            If ``version`` is unknown and the site lists alternatives.
        """
        entry = await self.get_search_index(version)
        if entry is None:
            return None

        if await self._versions.detect_versioning():
            prefix = f"{self.base_url}/{entry.version}/"
        else:
            prefix = f"{self.base_url}/"

        return search_index(
            entry,
            query,
            version=entry.version,
            url_for=lambda location: prefix + location.lstrip("/"),
            limit=limit,
            confidence_threshold=self._confidence_threshold,
            suggestion_min_results=self._suggestion_min_results,
        )

    async def get_available_versions(self) -> Optional[List[VersionInfo]]:
        return await self._versions.get_available_versions()

    async def clear_cache(self, version: Optional[str] = None) -> None:
        """
        Drop the cached index for one version, or every cached index.
        """
        if version:
            resolution = await self._versions.resolve_version(version)
            key = self._cache_key(resolution.resolved)
            self._cache.delete(key)
            logger.debug("Cleared cache for version: %s (%s)", version, key)
        else:
            self._cache.clear()
            logger.debug("Cleared all search index cache")

    def get_cache_stats(self) -> Dict[str, Any]:
        return self._cache.get_stats()
