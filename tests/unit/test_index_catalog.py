"""
Unit tests for the index catalog and index definition models.
"""

import pytest
from pymongo import ASCENDING, DESCENDING, TEXT

from inspi_db.database.index_catalog import (
    ALL_INDEXES,
    CATALOG_COLLECTIONS,
    find_duplicate_names,
    get_index_definition,
    indexes_by_collection
)
from inspi_db.exceptions import InvalidIndexDefinitionError
from inspi_db.models.indexes import IndexDefinition, IndexOptions, IndexType, parse_index_definition


class TestIndexCatalog:
    """The shipped catalog is internally consistent."""

    def test_names_unique_per_collection(self):
        assert find_duplicate_names() == {}

    def test_covers_platform_collections(self):
        assert CATALOG_COLLECTIONS == [
            "users", "works", "knowledgeGraphs", "graphNodes", "contributionLogs", "sessions"
        ]
        assert len(ALL_INDEXES) == 21

    @pytest.mark.parametrize("definition", ALL_INDEXES, ids=lambda d: d.name)
    def test_type_tags_match_options(self, definition):
        if definition.type == IndexType.TTL:
            assert definition.options.expire_after_seconds is not None
        if definition.type == IndexType.PARTIAL:
            assert definition.options.partial_filter_expression
        if definition.type == IndexType.TEXT:
            assert "text" in definition.fields.values()

    def test_lookup_by_collection_and_name(self):
        definition = get_index_definition("sessions", "sessions_ttl")

        assert definition is not None
        assert definition.type == IndexType.TTL
        assert get_index_definition("sessions", "missing") is None
        assert get_index_definition("users", "sessions_ttl") is None

    def test_grouping_preserves_catalog_order(self):
        groups = indexes_by_collection()

        assert [d.name for d in groups["users"]] == [
            d.name for d in ALL_INDEXES if d.collection == "users"
        ]

    def test_duplicates_detected(self):
        definition = ALL_INDEXES[0]

        assert find_duplicate_names([definition, definition]) == {definition.collection: [definition.name]}


class TestIndexDefinition:

    def test_keys_and_options_for_driver(self):
        definition = IndexDefinition(
            name="works_search",
            collection="works",
            fields={"title": "text", "createdAt": -1, "authorId": 1},
            type=IndexType.TEXT,
            options=IndexOptions(weights={"title": 10}, default_language="none")
        )

        assert definition.keys() == [("title", TEXT), ("createdAt", DESCENDING), ("authorId", ASCENDING)]
        assert definition.create_options() == {
            "name": "works_search",
            "weights": {"title": 10},
            "default_language": "none"
        }

    def test_ttl_options_renamed(self):
        definition = get_index_definition("sessions", "sessions_ttl")

        assert definition.create_options()["expireAfterSeconds"] == 0

    @pytest.mark.parametrize("data", [
        {"name": "t", "collection": "c", "fields": {"a": 1}, "type": "ttl"},
        {"name": "p", "collection": "c", "fields": {"a": 1}, "type": "partial"},
        {"name": "s", "collection": "c", "fields": {"a": 1, "b": 1}, "type": "single"},
        {"name": "x", "collection": "c", "fields": {"a": 1}, "type": "text"},
        {
            "name": "e", "collection": "c", "fields": {"a": 1}, "type": "single",
            "options": {"expire_after_seconds": 60}
        },
    ])
    def test_inconsistent_definitions_rejected(self, data):
        with pytest.raises(InvalidIndexDefinitionError):
            parse_index_definition(data)

    def test_parse_valid_definition(self):
        definition = parse_index_definition({
            "name": "logs_ttl",
            "collection": "contributionLogs",
            "fields": {"createdAt": 1},
            "type": "ttl",
            "options": {"expire_after_seconds": 3600}
        })

        assert definition.type == IndexType.TTL
        assert definition.create_options() == {"name": "logs_ttl", "expireAfterSeconds": 3600}

    def test_unknown_option_rejected(self):
        # background builds are ignored by MongoDB 4.2+ so the option is not accepted
        with pytest.raises(InvalidIndexDefinitionError):
            parse_index_definition({
                "name": "works_author",
                "collection": "works",
                "fields": {"authorId": 1},
                "type": "single",
                "options": {"background": True}
            })
