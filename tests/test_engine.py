"""
Engine Adapter Tests

Builds small in-memory tantivy indexes and checks matching, field
weighting and match metadata.
"""

import pytest

from docs_search.search.engine import (
    QueryBuilder,
    SEARCH_FIELDS,
    build_engine_index,
    tokenize,
)
from docs_search.search.models import DocumentRecord


@pytest.fixture
def engine_index():
    return build_engine_index(
        [
            DocumentRecord(
                location="install/",
                title="Installation",
                text="Install the toolkit with pip.",
                tags=["setup"],
            ),
            DocumentRecord(
                location="tracing/",
                title="Tracing",
                text="Tracing records spans. See the installation guide first.",
            ),
            DocumentRecord(
                location="setup/",
                title="Configuration",
                text="Settings are read from the environment.",
            ),
        ]
    )


def test_tokenize():
    assert tokenize("Hello, World_wide v2.0") == ["hello", "world", "wide", "v2", "0"]
    assert tokenize("") == []


def test_query_builder_splits_terms():
    builder = QueryBuilder().term("Span Exporters", fields=["title"], boost=2.0)

    assert [c.term for c in builder.clauses] == ["span", "exporters"]
    assert all(c.fields == ("title",) for c in builder.clauses)
    assert all(c.boost == 2.0 for c in builder.clauses)


def test_query_builder_defaults_to_all_fields():
    builder = QueryBuilder().term("span")
    assert builder.clauses[0].fields == SEARCH_FIELDS
    assert builder.clauses[0].wildcard is False


def test_document_count(engine_index):
    assert engine_index.document_count == 3


def test_search_returns_matching_refs(engine_index):
    refs = [hit.ref for hit in engine_index.search("spans")]
    assert refs == ["tracing/"]


def test_title_match_outranks_text_match(engine_index):
    hits = engine_index.search("installation")

    assert [hit.ref for hit in hits] == ["install/", "tracing/"]
    assert hits[0].score > hits[1].score


def test_tag_match_outranks_title_match(engine_index):
    hits = engine_index.search("setup")
    # "setup" is a tag of install/ and only the location of setup/,
    # which is not a searchable field
    assert [hit.ref for hit in hits] == ["install/"]


def test_no_match(engine_index):
    assert engine_index.search("kubernetes") == []


def test_empty_query(engine_index):
    assert engine_index.search("   ") == []


def test_limit(engine_index):
    assert len(engine_index.search("installation", limit=1)) == 1


def test_match_metadata_lists_fields(engine_index):
    hit = engine_index.search("installation")[0]
    assert hit.match_metadata == {"installation": {"title": {"count": 1}}}


def test_wildcard_clause_matches_prefix(engine_index):
    hits = engine_index.query(
        lambda q: q.term("config", fields=["title"], wildcard=True)
    )

    assert [hit.ref for hit in hits] == ["setup/"]
    assert "configuration" in hits[0].match_metadata


def test_empty_corpus():
    index = build_engine_index([])
    assert index.document_count == 0
    assert index.search("anything") == []
