"""
Index Builder

Turns a raw MkDocs search corpus into an engine index plus a lookup graph
linking each section to its parent article.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from .engine import DEFAULT_FIELD_WEIGHTS, EngineIndex, build_engine_index
from .models import DocumentRecord, IndexedDocument

logger = logging.getLogger("docs_search.builder")


@dataclass(frozen=True)
class BuiltIndex:
    engine_index: EngineIndex
    documents: Dict[str, IndexedDocument]


def _tags(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(t) for t in value if t]


def parse_corpus(payload: Any) -> List[DocumentRecord]:
    """
    Extract document records from a ``search_index.json`` body.

    Entries that are not objects or fail validation are skipped.

    Raises
    ------
    ValueError
        If the body has no ``docs`` list.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("docs"), list):
        raise ValueError("Search index body must be an object with a 'docs' list.")

    records: List[DocumentRecord] = []
    for i, raw in enumerate(payload["docs"]):
        if not isinstance(raw, dict):
            logger.debug("Skipping non-object corpus entry at index %d", i)
            continue
        try:
            records.append(
                DocumentRecord(
                    location=raw.get("location") or "",
                    title=raw.get("title") or "",
                    text=raw.get("text") or "",
                    tags=_tags(raw.get("tags")),
                )
            )
        except ValidationError as exc:
            logger.debug("Skipping malformed corpus entry at index %d: %s", i, exc)
    return records


class IndexBuilder:
    """
    Builds engine indexes and document graphs from corpus records.
    """

    def __init__(self, field_weights: Optional[Mapping[str, float]] = None) -> None:
        self._field_weights = dict(field_weights or DEFAULT_FIELD_WEIGHTS)

    def build(self, records: Iterable[DocumentRecord]) -> BuiltIndex:
        indexable = [r for r in records if r.is_indexable]

        documents: Dict[str, IndexedDocument] = {}
        articles: Dict[str, IndexedDocument] = {}

        for record in indexable:
            doc = IndexedDocument.from_record(record)
            documents[record.location] = doc
            if not doc.is_section:
                articles[doc.article_path] = doc

        # Sections are linked only after every article is known, so corpus
        # order does not matter.
        linked = 0
        for doc in documents.values():
            if doc.is_section:
                article = articles.get(doc.article_path)
                if article is not None:
                    doc.link_parent(article)
                    linked += 1

        engine_index = build_engine_index(indexable, self._field_weights)

        logger.debug(
            "Built document graph: %d documents, %d articles, %d linked sections",
            len(documents),
            len(articles),
            linked,
        )
        return BuiltIndex(engine_index=engine_index, documents=documents)
