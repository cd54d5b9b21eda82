from functools import lru_cache

from ..config import settings
from ..service import DocsSearchService


@lru_cache
def get_search_service() -> DocsSearchService:
    if settings.docs_base_url is None:
        raise RuntimeError("DOCS_BASE_URL is not configured.")
    return DocsSearchService(str(settings.docs_base_url))
