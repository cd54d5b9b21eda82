"""
Version and Cache Routes

Exposes the site's published versions and administrative access to the
index cache.
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends

from .dependencies import get_search_service
from .models import CacheStatsResponse, OperationResult, VersionEntry
from ..service import DocsSearchService

router = APIRouter(tags=["versions"])


@router.get("/versions", response_model=List[VersionEntry])
async def list_versions(
    service: Annotated[DocsSearchService, Depends(get_search_service)],
) -> List[VersionEntry]:
    """
    Versions published by the site, newest first as the manifest lists
    them. Empty for non-versioned sites.
    """
    versions = await service.get_available_versions() or []
    return [
        VersionEntry(version=v.version, title=v.title, aliases=sorted(v.aliases))
        for v in versions
    ]


@router.get(
    "/cache/stats",
    response_model=CacheStatsResponse,
    response_model_by_alias=True,
)
def cache_stats(
    service: Annotated[DocsSearchService, Depends(get_search_service)],
) -> CacheStatsResponse:
    return CacheStatsResponse(**service.get_cache_stats())


@router.delete("/cache", response_model=OperationResult)
async def clear_cache(
    service: Annotated[DocsSearchService, Depends(get_search_service)],
    version: Optional[str] = None,
) -> OperationResult:
    await service.clear_cache(version)
    return OperationResult(
        status="cleared",
        details={"version": version} if version else None,
    )
