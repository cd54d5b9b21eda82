"""
Search Data Models

- ``DocumentRecord``: one entry of an MkDocs ``search_index.json`` corpus.
- ``IndexedDocument``: the lookup-graph node derived from a record.
- ``SearchIndexEntry``: a built, cacheable index for one site version.
- ``SearchHit`` / ``SearchResponse``: ranked, grouped query output.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

ANCHOR_MARKER = "#"
PREVIEW_LENGTH = 200
PREVIEW_ELLIPSIS = "..."


# ---------------------------------------------------------------------
# Corpus input
# ---------------------------------------------------------------------

class DocumentRecord(BaseModel):
    """
    A page or in-page section as published by the MkDocs search plugin.
    """

    location: str = ""
    title: str = ""
    text: str = ""
    tags: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def is_indexable(self) -> bool:
        return bool(self.location) and bool(self.title or self.text)


# ---------------------------------------------------------------------
# Lookup graph
# ---------------------------------------------------------------------

def split_location(location: str) -> tuple[str, bool]:
    """Return ``(article_path, is_section)`` for a document location."""
    article_path, sep, _ = location.partition(ANCHOR_MARKER)
    return article_path, bool(sep)


def make_preview(text: str) -> str:
    if not text:
        return ""
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + PREVIEW_ELLIPSIS
    return text


@dataclass(eq=False)
class IndexedDocument:
    """
    A node of the per-version document graph.

    Sections hold a weak reference to their article; the index's document
    map is the only owner of either node.
    """

    title: str
    location: str
    preview: str
    tags: List[str]
    is_section: bool
    article_path: str
    _parent_ref: Optional["weakref.ReferenceType[IndexedDocument]"] = field(
        default=None, repr=False
    )

    @classmethod
    def from_record(cls, record: DocumentRecord) -> "IndexedDocument":
        article_path, is_section = split_location(record.location)
        return cls(
            title=record.title,
            location=record.location,
            preview=make_preview(record.text),
            tags=list(record.tags),
            is_section=is_section,
            article_path=article_path,
        )

    @property
    def parent(self) -> Optional["IndexedDocument"]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def link_parent(self, article: "IndexedDocument") -> None:
        self._parent_ref = weakref.ref(article)


# ---------------------------------------------------------------------
# Cached index
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class IndexMetadata:
    loaded_at: datetime
    estimated_size_bytes: int
    document_count: int
    is_default: bool


@dataclass(frozen=True)
class SearchIndexEntry:
    """
    A built search index for one (site, resolved version).

    Never mutated after construction; a stale entry is replaced wholesale.
    """

    version: str
    source_url: str
    engine_index: Any
    documents: Mapping[str, IndexedDocument]
    metadata: IndexMetadata


# ---------------------------------------------------------------------
# Query output
# ---------------------------------------------------------------------

class ParentArticle(BaseModel):
    title: str
    location: str
    url: Optional[str] = None


class SearchHit(BaseModel):
    """
    One ranked document in a grouped result list.
    """

    title: str
    location: str
    url: Optional[str] = None
    score: float = Field(..., ge=0.0)
    base_score: float = Field(default=0.0, ge=0.0, alias="baseScore")
    preview: str = ""
    is_section: bool = Field(default=False, alias="isSection")
    article_path: str = Field(..., alias="articlePath")
    parent_article: Optional[ParentArticle] = Field(default=None, alias="parentArticle")
    match_metadata: Dict[str, Any] = Field(default_factory=dict, alias="matchMetadata")

    model_config = ConfigDict(populate_by_name=True)


class SearchResponse(BaseModel):
    """
    Grouped search results for one query against one version.
    """

    query: str
    version: Optional[str] = None
    results: List[SearchHit] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    group_count: int = Field(..., ge=0, alias="groupCount")
    suggestions: Optional[List[str]] = None

    model_config = ConfigDict(populate_by_name=True)
