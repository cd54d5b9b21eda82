"""
Full-Text Engine Adapter

Wraps an in-RAM tantivy index behind the small surface the ranking layer
needs:

- ``build_engine_index(records, field_weights)`` -> ``EngineIndex``
- ``EngineIndex.search(query)`` -> ranked ``EngineHit`` list
- ``EngineIndex.query(callback)`` -> same, for queries assembled clause by
  clause through a ``QueryBuilder`` (per-clause fields, boost and
  trailing wildcard)

Every hit carries match metadata: each index term that matched, mapped to
the fields it matched in.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import tantivy

from .models import DocumentRecord

logger = logging.getLogger("docs_search.engine")

REF_FIELD = "location"
SEARCH_FIELDS = ("title", "text", "tags")

# Only the ordering tags > title > text is meaningful
DEFAULT_FIELD_WEIGHTS: Dict[str, float] = {
    "text": 1.0,
    "title": 1_000.0,
    "tags": 1_000_000.0,
}

WRITER_HEAP_BYTES = 50_000_000

# Mirrors tantivy's "default" tokenizer: lowercase, split on anything
# that is not a letter or digit.
_TOKEN_RE = re.compile(r"[^\W_]+")


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall(text.lower()) if text else []


class EngineError(RuntimeError):
    """Raised when the search engine rejects a build or a query."""


@dataclass(frozen=True)
class EngineHit:
    ref: str
    score: float
    match_metadata: Dict[str, Dict[str, Dict[str, int]]] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryClause:
    term: str
    fields: Sequence[str] = SEARCH_FIELDS
    boost: float = 1.0
    wildcard: bool = False


class QueryBuilder:
    """
    Collects OR-ed term clauses for ``EngineIndex.query``.
    """

    def __init__(self) -> None:
        self.clauses: List[QueryClause] = []

    def term(
        self,
        term: str,
        fields: Optional[Sequence[str]] = None,
        boost: float = 1.0,
        wildcard: bool = False,
    ) -> "QueryBuilder":
        for token in tokenize(term):
            self.clauses.append(
                QueryClause(
                    term=token,
                    fields=tuple(fields) if fields else SEARCH_FIELDS,
                    boost=boost,
                    wildcard=wildcard,
                )
            )
        return self


def _build_schema() -> tantivy.Schema:
    schema_builder = tantivy.SchemaBuilder()
    schema_builder.add_text_field(REF_FIELD, stored=True, tokenizer_name="raw")
    schema_builder.add_text_field("title", stored=True, index_option="position")
    schema_builder.add_text_field("text", stored=True, index_option="position")
    schema_builder.add_text_field("tags", stored=True, index_option="position")
    return schema_builder.build()


class EngineIndex:
    """
    A committed, read-only tantivy index over one document corpus.
    """

    def __init__(
        self,
        index: tantivy.Index,
        schema: tantivy.Schema,
        field_weights: Mapping[str, float],
        document_count: int,
    ) -> None:
        self._index = index
        self._schema = schema
        self._field_weights = dict(field_weights)
        self.document_count = document_count

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def search(self, query: str, limit: Optional[int] = None) -> List[EngineHit]:
        """
        Match any token of ``query`` in any field, weighted per field.
        """
        builder = QueryBuilder()
        builder.term(query)
        return self._run(builder.clauses, limit)

    def query(
        self,
        build: Callable[[QueryBuilder], None],
        limit: Optional[int] = None,
    ) -> List[EngineHit]:
        builder = QueryBuilder()
        build(builder)
        return self._run(builder.clauses, limit)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _clause_query(self, clause: QueryClause, field_name: str) -> tantivy.Query:
        if clause.wildcard:
            q = tantivy.Query.regex_query(
                self._schema, field_name, re.escape(clause.term) + ".*"
            )
        else:
            q = tantivy.Query.term_query(self._schema, field_name, clause.term)

        weight = self._field_weights.get(field_name, 1.0) * clause.boost
        if weight != 1.0:
            q = tantivy.Query.boost_query(q, weight)
        return q

    def _run(self, clauses: List[QueryClause], limit: Optional[int]) -> List[EngineHit]:
        if not clauses or self.document_count == 0:
            return []

        subqueries = [
            (tantivy.Occur.Should, self._clause_query(clause, field_name))
            for clause in clauses
            for field_name in clause.fields
        ]

        try:
            searcher = self._index.searcher()
            result = searcher.search(
                tantivy.Query.boolean_query(subqueries),
                limit or self.document_count,
            )
        except Exception as exc:
            raise EngineError(f"Search failed: {type(exc).__name__}: {exc}") from exc

        hits: List[EngineHit] = []
        for score, address in result.hits:
            stored = searcher.doc(address).to_dict()
            refs = stored.get(REF_FIELD) or []
            if not refs:
                continue
            hits.append(
                EngineHit(
                    ref=refs[0],
                    score=float(score),
                    match_metadata=_match_metadata(stored, clauses),
                )
            )
        return hits


def _match_metadata(
    stored: Mapping[str, List[str]],
    clauses: Iterable[QueryClause],
) -> Dict[str, Dict[str, Dict[str, int]]]:
    metadata: Dict[str, Dict[str, Dict[str, int]]] = {}
    tokens_by_field = {
        name: [t for value in stored.get(name, []) for t in tokenize(str(value))]
        for name in SEARCH_FIELDS
    }

    for clause in clauses:
        for field_name in clause.fields:
            for token in tokens_by_field.get(field_name, []):
                matched = (
                    token.startswith(clause.term) if clause.wildcard else token == clause.term
                )
                if not matched:
                    continue
                per_field = metadata.setdefault(token, {}).setdefault(
                    field_name, {"count": 0}
                )
                per_field["count"] += 1
    return metadata


def build_engine_index(
    records: Iterable[DocumentRecord],
    field_weights: Optional[Mapping[str, float]] = None,
) -> EngineIndex:
    """
    Index ``records`` into a fresh in-memory tantivy index.

    Raises
    ------
    EngineError
        If tantivy rejects a document or the commit fails.
    """
    schema = _build_schema()
    index = tantivy.Index(schema)
    count = 0

    try:
        writer = index.writer(heap_size=WRITER_HEAP_BYTES, num_threads=1)
        for record in records:
            fields = {
                REF_FIELD: record.location,
                "title": record.title,
                "text": record.text,
            }
            if record.tags:
                fields["tags"] = list(record.tags)
            writer.add_document(tantivy.Document(**fields))
            count += 1
        writer.commit()
        writer.wait_merging_threads()
        index.reload()
    except Exception as exc:
        raise EngineError(f"Index build failed: {type(exc).__name__}: {exc}") from exc

    logger.debug("Built engine index with %d documents", count)
    return EngineIndex(
        index=index,
        schema=schema,
        field_weights=field_weights or DEFAULT_FIELD_WEIGHTS,
        document_count=count,
    )
