"""
Version Manager Tests

Detection, manifest validation and caching, and version resolution
against an in-process site.
"""

import pytest

from docs_search.config import VersionManagerOptions
from docs_search.core.errors import DocsSearchError, VersionNotFoundError
from docs_search.versions.manager import VersionManager



@pytest.fixture
def make_manager(make_client, clock):
    def _make(timeout=300, **client_kwargs):
        return VersionManager(
            make_client(**client_kwargs),
            options=VersionManagerOptions(cache_timeout_seconds=timeout),
            manifest_path="versions.json",
            clock=clock,
        )

    return _make


# ---------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------

class TestDetection:
    @pytest.mark.asyncio
    async def test_versioned_site(self, site, make_manager, manifest):
        site.json("/versions.json", manifest)
        assert await make_manager().detect_versioning() is True

    @pytest.mark.asyncio
    async def test_missing_manifest_means_non_versioned(self, make_manager):
        assert await make_manager().detect_versioning() is False

    @pytest.mark.asyncio
    async def test_transport_failure_means_non_versioned(self, site, make_manager):
        site.fail("/versions.json", 100)
        manager = make_manager(retry_attempts=2)

        assert await manager.detect_versioning() is False
        assert site.count("/versions.json") == 2

    @pytest.mark.asyncio
    async def test_soft_404_page_means_non_versioned(self, site, make_manager):
        site.json("/versions.json", "<html>soft 404</html>")
        manager = make_manager()

        assert await manager.detect_versioning() is False
        result = await manager.resolve_version()
        assert result.valid is True
        assert result.resolved == "default"

    @pytest.mark.asyncio
    async def test_non_array_manifest_means_non_versioned(self, site, make_manager, manifest):
        site.json("/versions.json", {"versions": manifest})
        assert await make_manager().detect_versioning() is False

    @pytest.mark.asyncio
    async def test_empty_array_is_still_versioned(self, site, make_manager):
        site.json("/versions.json", [])
        assert await make_manager().detect_versioning() is True

    @pytest.mark.asyncio
    async def test_result_is_cached(self, site, make_manager, manifest):
        site.json("/versions.json", manifest)
        manager = make_manager()

        await manager.detect_versioning()
        await manager.detect_versioning()

        assert site.count("/versions.json") == 1

    @pytest.mark.asyncio
    async def test_invalidate_forces_new_probe(self, site, make_manager, manifest):
        manager = make_manager()
        assert await manager.detect_versioning() is False

        site.json("/versions.json", manifest)
        manager.invalidate_cache()

        assert await manager.detect_versioning() is True


# ---------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------

class TestFetchVersions:
    @pytest.mark.asyncio
    async def test_parses_manifest_in_order(self, site, make_manager, manifest):
        site.json("/versions.json", manifest)
        versions = await make_manager().fetch_versions()

        assert [v.version for v in versions] == ["v2.0", "v1.0"]
        assert versions[0].aliases == frozenset({"latest"})
        assert versions[1].aliases == frozenset()

    @pytest.mark.asyncio
    async def test_drops_malformed_entries(self, site, make_manager):
        site.json(
            "/versions.json",
            [
                {"version": "v2.0", "title": "2.0", "aliases": ["latest"]},
                {"title": "no version"},
                {"version": "v1.5", "title": ""},
                {"version": "v1.2", "title": "1.2", "aliases": "stable"},
                "not-an-object",
                {"version": "v1.0", "title": "1.0"},
            ],
        )
        versions = await make_manager().fetch_versions()

        assert [v.version for v in versions] == ["v2.0", "v1.0"]

    @pytest.mark.asyncio
    async def test_non_array_body_is_absent(self, site, make_manager, manifest):
        site.json("/versions.json", {"versions": manifest})
        assert await make_manager().fetch_versions() is None

    @pytest.mark.asyncio
    async def test_invalid_json_is_absent(self, site, make_manager):
        site.json("/versions.json", "{not json")
        assert await make_manager().fetch_versions() is None

    @pytest.mark.asyncio
    async def test_missing_manifest_is_absent(self, make_manager):
        assert await make_manager().fetch_versions() is None

    @pytest.mark.asyncio
    async def test_manifest_cached_until_timeout(self, site, make_manager, clock, manifest):
        site.json("/versions.json", manifest)
        manager = make_manager(timeout=300)

        await manager.fetch_versions()
        clock.advance(299)
        await manager.fetch_versions()
        assert site.count("/versions.json") == 1

        clock.advance(2)
        await manager.fetch_versions()
        assert site.count("/versions.json") == 2

    @pytest.mark.asyncio
    async def test_get_available_versions(self, site, make_manager, manifest):
        site.json("/versions.json", manifest)
        versions = await make_manager().get_available_versions()
        assert len(versions) == 2


# ---------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------

class TestResolveVersion:
    @pytest.mark.asyncio
    async def test_implicit_version_is_first_entry(self, site, make_manager, manifest):
        site.json("/versions.json", manifest)
        result = await make_manager().resolve_version()

        assert result.valid is True
        assert result.resolved == "v2.0"
        assert result.is_default is True

    @pytest.mark.asyncio
    async def test_latest_is_first_entry(self, site, make_manager):
        site.json(
            "/versions.json",
            [
                {"version": "v3.0", "title": "3.0"},
                {"version": "v2.0", "title": "2.0", "aliases": ["latest"]},
            ],
        )
        result = await make_manager().resolve_version("latest")
        assert result.resolved == "v3.0"

    @pytest.mark.asyncio
    async def test_exact_match(self, site, make_manager, manifest):
        site.json("/versions.json", manifest)
        result = await make_manager().resolve_version("v1.0")

        assert result.valid is True
        assert result.resolved == "v1.0"
        assert result.is_default is False

    @pytest.mark.asyncio
    async def test_alias_resolves_to_version(self, site, make_manager):
        site.json(
            "/versions.json",
            [
                {"version": "v2.0", "title": "2.0", "aliases": ["stable"]},
                {"version": "v1.0", "title": "1.0"},
            ],
        )
        result = await make_manager().resolve_version("stable")

        assert result.valid is True
        assert result.resolved == "v2.0"

    @pytest.mark.asyncio
    async def test_exact_match_beats_alias(self, site, make_manager):
        site.json(
            "/versions.json",
            [
                {"version": "v2.0", "title": "2.0", "aliases": ["v1.0"]},
                {"version": "v1.0", "title": "1.0"},
            ],
        )
        result = await make_manager().resolve_version("v1.0")
        assert result.resolved == "v1.0"

    @pytest.mark.asyncio
    async def test_unknown_version(self, site, make_manager, manifest):
        site.json("/versions.json", manifest)
        result = await make_manager().resolve_version("v9.9")

        assert result.valid is False
        assert "v1.0, v2.0" in result.error
        assert [v.version for v in result.available] == ["v2.0", "v1.0"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requested", [None, "latest", "v1.0", "stable", "v9.9"])
    async def test_resolution_is_idempotent(self, site, make_manager, clock, requested):
        site.json(
            "/versions.json",
            [
                {"version": "v2.0", "title": "2.0", "aliases": ["latest", "stable"]},
                {"version": "v1.0", "title": "1.0"},
            ],
        )
        manager = make_manager(timeout=300)

        first = await manager.resolve_version(requested)
        clock.advance(301)
        second = await manager.resolve_version(requested)

        assert site.count("/versions.json") == 3
        assert first == second

    @pytest.mark.asyncio
    async def test_non_versioned_ignores_request(self, make_manager):
        result = await make_manager().resolve_version("v9.9")

        assert result.valid is True
        assert result.resolved == "default"
        assert result.is_default is True

    @pytest.mark.asyncio
    async def test_empty_manifest_has_no_versions(self, site, make_manager):
        site.json("/versions.json", [])
        result = await make_manager().resolve_version("v1.0")

        assert result.valid is False
        assert result.error == "No versions available"
        assert not result.available


class TestBuildVersionedUrl:
    @pytest.mark.asyncio
    async def test_versioned(self, site, make_manager, manifest, base_url):
        site.json("/versions.json", manifest)
        url = await make_manager().build_versioned_url("/guide/", "latest")
        assert url == f"{base_url}/v2.0/guide/"

    @pytest.mark.asyncio
    async def test_non_versioned(self, make_manager, base_url):
        url = await make_manager().build_versioned_url("guide/", "v1.0")
        assert url == f"{base_url}/guide/"

    @pytest.mark.asyncio
    async def test_unknown_version_raises_with_alternatives(self, site, make_manager, manifest):
        site.json("/versions.json", manifest)

        with pytest.raises(VersionNotFoundError) as exc_info:
            await make_manager().build_versioned_url("guide/", "v9.9")

        assert exc_info.value.requested_version == "v9.9"
        assert "v1.0, v2.0" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_no_versions_raises_generic_error(self, site, make_manager):
        site.json("/versions.json", [])

        with pytest.raises(DocsSearchError) as exc_info:
            await make_manager().build_versioned_url("guide/", "v1.0")

        assert not isinstance(exc_info.value, VersionNotFoundError)
