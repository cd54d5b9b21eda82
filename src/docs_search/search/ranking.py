"""
Ranking and Grouping

Post-query relevance processing for a built search index:

1. Delegate matching to the engine.
2. Multiply each base score by a boost derived from title, tag and
   article/section signals.
3. Group hits by article path, making sure every group contains its
   article (a zero-score placeholder when the article itself did not
   match).
4. Order groups by their best hit.
5. When fewer than a handful of results remain, suggest related index
   terms from a prefix query over titles.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .engine import EngineHit, EngineIndex, QueryBuilder, tokenize
from .models import IndexedDocument, ParentArticle, SearchHit, SearchIndexEntry, SearchResponse

logger = logging.getLogger("docs_search.ranking")

TITLE_TERM_BOOST = 0.5
EXACT_TITLE_BOOST = 2.0
ARTICLE_BOOST = 0.2
TAG_TERM_BOOST = 0.3

SUGGESTION_MIN_RESULTS = 3
SUGGESTION_HIT_LIMIT = 5
SUGGESTION_LIMIT = 5
SUGGESTION_MIN_TERM_LENGTH = 3
SUGGESTION_TITLE_BOOST = 10.0

UrlBuilder = Callable[[str], str]


@dataclass
class RankedHit:
    document: IndexedDocument
    score: float
    base_score: float
    match_metadata: Dict[str, Any] = field(default_factory=dict)


def query_terms(query: str) -> List[str]:
    """Distinct lower-cased whitespace-separated terms longer than one char."""
    seen: Dict[str, None] = {}
    for term in query.lower().split():
        if len(term) > 1:
            seen.setdefault(term, None)
    return list(seen)


def compute_boost(doc: IndexedDocument, query: str, terms: Optional[List[str]] = None) -> float:
    if terms is None:
        terms = query_terms(query)

    boost = 1.0
    title = doc.title.lower()

    boost += TITLE_TERM_BOOST * sum(1 for t in terms if t in title)

    if title == query.lower():
        boost += EXACT_TITLE_BOOST

    if not doc.is_section:
        boost += ARTICLE_BOOST

    tags = [tag.lower() for tag in doc.tags]
    boost += TAG_TERM_BOOST * sum(1 for t in terms if any(t in tag for tag in tags))

    return boost


def rank_hits(
    raw_hits: List[EngineHit],
    documents: Mapping[str, IndexedDocument],
    query: str,
) -> List[RankedHit]:
    terms = query_terms(query)
    ranked: List[RankedHit] = []

    for hit in raw_hits:
        doc = documents.get(hit.ref)
        if doc is None:
            logger.debug("Engine returned unknown ref: %s", hit.ref)
            continue
        ranked.append(
            RankedHit(
                document=doc,
                score=hit.score * compute_boost(doc, query, terms),
                base_score=hit.score,
                match_metadata=hit.match_metadata,
            )
        )
    return ranked


def group_results(
    ranked: List[RankedHit],
    documents: Mapping[str, IndexedDocument],
) -> List[List[RankedHit]]:
    """
    Bucket hits by article path and order buckets by their top score.

    A bucket whose article did not match gets a zero-score placeholder
    for it, provided the article is in the document graph.
    """
    buckets: Dict[str, List[RankedHit]] = {}
    for hit in ranked:
        buckets.setdefault(hit.document.article_path, []).append(hit)

    for article_path, members in buckets.items():
        if not any(m.document.location == article_path for m in members):
            article = documents.get(article_path)
            if article is not None:
                members.append(RankedHit(document=article, score=0.0, base_score=0.0))
        members.sort(key=lambda m: m.score, reverse=True)

    return sorted(buckets.values(), key=lambda members: members[0].score, reverse=True)


def collect_suggestions(engine_index: EngineIndex, query: str) -> List[str]:
    """
    Return up to five index terms related to ``query``.

    Never raises: any engine failure yields an empty list.
    """
    try:
        terms = tokenize(query)
        if not terms:
            return []

        def build(q: QueryBuilder) -> None:
            for term in terms:
                q.term(term, fields=["title"], boost=SUGGESTION_TITLE_BOOST, wildcard=True)
                q.term(term, fields=["title", "text"])

        hits = engine_index.query(build)[:SUGGESTION_HIT_LIMIT]

        lowered = query.lower()
        suggestions: List[str] = []
        for hit in hits:
            for term in hit.match_metadata:
                if len(term) < SUGGESTION_MIN_TERM_LENGTH or term in lowered:
                    continue
                if term not in suggestions:
                    suggestions.append(term)
                if len(suggestions) >= SUGGESTION_LIMIT:
                    return suggestions
        return suggestions
    except Exception as exc:
        logger.debug("Suggestion query failed for '%s': %s", query, exc)
        return []


def _to_search_hit(hit: RankedHit, url_for: Optional[UrlBuilder]) -> SearchHit:
    doc = hit.document
    parent = doc.parent if doc.is_section else None

    return SearchHit(
        title=doc.title or doc.location,
        location=doc.location,
        url=url_for(doc.location) if url_for else None,
        score=hit.score,
        base_score=hit.base_score,
        preview=doc.preview,
        is_section=doc.is_section,
        article_path=doc.article_path,
        parent_article=(
            ParentArticle(
                title=parent.title,
                location=parent.location,
                url=url_for(parent.location) if url_for else None,
            )
            if parent is not None
            else None
        ),
        match_metadata=hit.match_metadata,
    )


def search_index(
    entry: SearchIndexEntry,
    query: str,
    version: Optional[str] = None,
    url_for: Optional[UrlBuilder] = None,
    limit: Optional[int] = None,
    confidence_threshold: float = 0.0,
    suggestion_min_results: int = SUGGESTION_MIN_RESULTS,
) -> SearchResponse:
    """
    Run ``query`` against ``entry`` and return grouped, scored results.

    Parameters
    ----------
    entry : SearchIndexEntry
        A built index.

    query : str
        Raw user query.

    version : Optional[str]
        Version label echoed back in the response.

    url_for : Optional[UrlBuilder]
        Maps a document location to an absolute URL.

    limit : Optional[int]
        Maximum number of groups to return.

    confidence_threshold : float
        Boosted hits scoring below this are dropped before grouping.

    suggestion_min_results : int
        Suggestions are computed when fewer results than this remain.
    """
    raw_hits = entry.engine_index.search(query)
    ranked = [
        hit
        for hit in rank_hits(raw_hits, entry.documents, query)
        if hit.score >= confidence_threshold
    ]

    groups = group_results(ranked, entry.documents)
    if limit is not None:
        groups = groups[:limit]

    results = [_to_search_hit(hit, url_for) for members in groups for hit in members]

    suggestions: Optional[List[str]] = None
    if len(results) < suggestion_min_results:
        suggestions = collect_suggestions(entry.engine_index, query)

    logger.debug(
        "Query '%s' (version %s): %d raw hits, %d results in %d groups",
        query,
        version,
        len(raw_hits),
        len(results),
        len(groups),
    )

    return SearchResponse(
        query=query,
        version=version,
        results=results,
        total=len(results),
        group_count=len(groups),
        suggestions=suggestions,
    )
