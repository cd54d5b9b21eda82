"""
Search Package

Index building, the full-text engine adapter, ranking/grouping and
single-flight index loading.
"""

from .builder import BuiltIndex, IndexBuilder, parse_corpus
from .engine import EngineHit, EngineIndex, QueryBuilder, build_engine_index
from .loader import IndexLoader
from .models import (
    DocumentRecord,
    IndexedDocument,
    IndexMetadata,
    SearchHit,
    SearchIndexEntry,
    SearchResponse,
)
from .ranking import search_index

__all__ = [
    "BuiltIndex",
    "IndexBuilder",
    "parse_corpus",
    "EngineHit",
    "EngineIndex",
    "QueryBuilder",
    "build_engine_index",
    "IndexLoader",
    "DocumentRecord",
    "IndexedDocument",
    "IndexMetadata",
    "SearchHit",
    "SearchIndexEntry",
    "SearchResponse",
    "search_index",
]
