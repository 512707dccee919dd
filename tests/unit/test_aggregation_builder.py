"""
Unit tests for the fluent aggregation pipeline builder.
"""

from inspi_db.models.filters import FieldCondition
from inspi_db.models.pipeline import LimitStage, MatchStage, SortStage
from inspi_db.services.aggregation_builder import AggregationBuilder
from inspi_db.services.pipeline_optimizer import PipelineOptimizer


class TestAggregationBuilder:
    """Test suite for AggregationBuilder."""

    def test_stages_appended_in_call_order(self):
        builder = (
            AggregationBuilder("works")
            .match({"status": "published"})
            .group({"_id": "$subject", "count": {"$sum": 1}})
            .sort({"count": -1})
            .skip(10)
            .limit(5)
            .project({"count": 1})
            .unwind("tags")
            .add_fields({"n": 1})
            .sample(3)
        )

        assert [stage.operator for stage in builder.get_pipeline()] == [
            "$match", "$group", "$sort", "$skip", "$limit", "$project", "$unwind", "$addFields", "$sample"
        ]
        assert len(builder) == 9

    def test_every_method_returns_same_builder(self):
        builder = AggregationBuilder("users")

        assert builder.match({}) is builder
        assert builder.sort({"a": 1}) is builder
        assert builder.facet({"all": [{"$limit": 1}]}) is builder

    def test_get_pipeline_is_a_defensive_copy(self):
        builder = AggregationBuilder("users").match({"status": "active"})

        pipeline = builder.get_pipeline()
        pipeline.append(LimitStage(count=1))
        pipeline[0].filter["status"] = "banned"

        assert builder.to_mongo() == [{"$match": {"status": "active"}}]

    def test_match_accepts_filter_expression(self):
        builder = AggregationBuilder("users").match(FieldCondition(field="age", op="gte", value=18))

        assert builder.to_mongo() == [{"$match": {"age": {"$gte": 18}}}]

    def test_unwind_adds_dollar_prefix(self):
        builder = AggregationBuilder("works").unwind("tags").unwind("$authors", preserve_null_and_empty_arrays=True)

        assert builder.to_mongo() == [
            {"$unwind": {"path": "$tags"}},
            {"$unwind": {"path": "$authors", "preserveNullAndEmptyArrays": True}},
        ]

    def test_lookup_with_sub_pipeline(self):
        builder = AggregationBuilder("works").lookup(
            from_collection="users",
            as_field="author",
            let={"authorId": "$authorId"},
            pipeline=[{"$match": {"$expr": {"$eq": ["$_id", "$$authorId"]}}}]
        )

        assert builder.to_mongo() == [{
            "$lookup": {
                "from": "users",
                "let": {"authorId": "$authorId"},
                "pipeline": [{"$match": {"$expr": {"$eq": ["$_id", "$$authorId"]}}}],
                "as": "author"
            }
        }]

    def test_initial_pipeline_is_copied(self):
        initial = [MatchStage(filter={"a": 1})]

        builder = AggregationBuilder("works", initial)
        initial[0].filter["a"] = 2

        assert builder.to_mongo() == [{"$match": {"a": 1}}]

    def test_optimize_rewrites_pipeline(self):
        builder = (
            AggregationBuilder("works")
            .sort({"createdAt": -1})
            .match({"status": "published"})
            .optimize(PipelineOptimizer("and"))
        )

        pipeline = builder.get_pipeline()
        assert isinstance(pipeline[0], MatchStage)
        assert isinstance(pipeline[1], SortStage)
