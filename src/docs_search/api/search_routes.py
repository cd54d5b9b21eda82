"""
Search Routes

Ranked, grouped full-text search over the configured documentation site.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from .dependencies import get_search_service
from .models import SearchRequest
from ..search.models import SearchResponse
from ..service import DocsSearchService

router = APIRouter(prefix="/search", tags=["search"])


@router.post(
    "/",
    response_model=SearchResponse,
    response_model_by_alias=True,
    summary="Version-aware documentation search",
    status_code=status.HTTP_200_OK,
)
async def search(
    req: SearchRequest,
    service: Annotated[DocsSearchService, Depends(get_search_service)],
) -> SearchResponse:
    """
    Search the documentation.

    Parameters
    ----------
    req : SearchRequest
        Contains:
        - query: Search query string
        - version: Optional version or alias ("latest" by default)
        - limit: Maximum number of article groups

    Returns
    -------
    SearchResponse
        Grouped results; suggestions when few results were found.
    """
    # VersionNotFoundError is translated to a 404 by the registered handler.
    result = await service.search(req.query, version=req.version, limit=req.limit)

    if result is None:
        suffix = f" for version: {req.version}" if req.version else ""
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"No search index available{suffix}",
        )

    return result
