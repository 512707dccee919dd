"""
Predefined aggregation pipelines for platform analytics.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Literal

from inspi_db.services.aggregation_builder import AggregationBuilder


RankingPeriod = Literal["day", "week", "month", "all"]

_PERIOD_DAYS = {"day": 1, "week": 7, "month": 30}


class AggregationTemplates:
    """Factories for the analytics pipelines used across the platform."""

    @staticmethod
    def user_stats() -> AggregationBuilder:
        """Active users per subscription type."""
        return (
            AggregationBuilder("users")
            .match({"status": "active"})
            .group({
                "_id": "$subscription.type",
                "count": {"$sum": 1},
                "avgContribution": {"$avg": "$stats.contributionScore"},
                "totalWorks": {"$sum": "$stats.worksCount"}
            })
            .sort({"count": -1})
        )

    @staticmethod
    def popular_works(limit: int = 20) -> AggregationBuilder:
        """Published public works ranked by a weighted popularity score."""
        return (
            AggregationBuilder("works")
            .match({"status": "published", "visibility": "public"})
            .add_fields({
                "popularityScore": {
                    "$add": [
                        {"$multiply": ["$stats.views", 1]},
                        {"$multiply": ["$stats.likes", 5]},
                        {"$multiply": ["$stats.reuses", 10]}
                    ]
                }
            })
            .sort({"popularityScore": -1})
            .limit(limit)
            .project({
                "title": 1,
                "authorId": 1,
                "subject": 1,
                "grade": 1,
                "stats": 1,
                "popularityScore": 1
            })
        )

    @staticmethod
    def contribution_ranking(period: RankingPeriod = "all") -> AggregationBuilder:
        """
        Contribution leaderboard.

        Args:
            period: Only users active within the last day, week or month;
                "all" applies no activity window
        """
        if period != "all" and period not in _PERIOD_DAYS:
            raise ValueError(f"Unknown ranking period: {period}")

        builder = AggregationBuilder("users")
        if period != "all":
            start_date = datetime.now(timezone.utc) - timedelta(days=_PERIOD_DAYS[period])
            builder.match({"stats.lastActiveAt": {"$gte": start_date}})

        return (
            builder
            .match({"stats.contributionScore": {"$gt": 0}})
            .sort({"stats.contributionScore": -1})
            .limit(100)
            .project({
                "name": 1,
                "avatar": 1,
                "contributionScore": "$stats.contributionScore",
                "worksCount": "$stats.worksCount",
                "reusedCount": "$stats.reusedCount"
            })
        )

    @staticmethod
    def subject_distribution() -> AggregationBuilder:
        """Published works per subject and grade."""
        return (
            AggregationBuilder("works")
            .match({"status": "published", "visibility": "public"})
            .group({
                "_id": {"subject": "$subject", "grade": "$grade"},
                "count": {"$sum": 1},
                "avgRating": {"$avg": "$stats.rating"},
                "totalViews": {"$sum": "$stats.views"}
            })
            .sort({"count": -1})
            .project({
                "subject": "$_id.subject",
                "grade": "$_id.grade",
                "count": 1,
                "avgRating": {"$round": ["$avgRating", 2]},
                "totalViews": 1
            })
        )

    @staticmethod
    def user_activity_analysis() -> AggregationBuilder:
        """Users bucketed by how recently they were active."""
        now = datetime.now(timezone.utc)
        return (
            AggregationBuilder("users")
            .add_fields({
                "activityLevel": {
                    "$switch": {
                        "branches": [
                            {
                                "case": {"$gte": ["$stats.lastActiveAt", now - timedelta(days=1)]},
                                "then": "daily"
                            },
                            {
                                "case": {"$gte": ["$stats.lastActiveAt", now - timedelta(days=7)]},
                                "then": "weekly"
                            },
                            {
                                "case": {"$gte": ["$stats.lastActiveAt", now - timedelta(days=30)]},
                                "then": "monthly"
                            }
                        ],
                        "default": "inactive"
                    }
                }
            })
            .group({
                "_id": "$activityLevel",
                "count": {"$sum": 1},
                "avgContribution": {"$avg": "$stats.contributionScore"}
            })
            .sort({"count": -1})
        )

    @staticmethod
    def knowledge_graph_usage() -> AggregationBuilder:
        """Graphs, nodes and mounted works per subject."""
        return (
            AggregationBuilder("knowledgeGraphs")
            .lookup(
                from_collection="graphNodes",
                local_field="_id",
                foreign_field="graphId",
                as_field="nodes"
            )
            .add_fields({
                "nodeCount": {"$size": "$nodes"},
                "workCount": {
                    "$sum": {
                        "$map": {
                            "input": "$nodes",
                            "as": "node",
                            "in": {"$size": "$$node.works"}
                        }
                    }
                }
            })
            .group({
                "_id": "$subject",
                "graphCount": {"$sum": 1},
                "totalNodes": {"$sum": "$nodeCount"},
                "totalWorks": {"$sum": "$workCount"},
                "avgNodesPerGraph": {"$avg": "$nodeCount"}
            })
            .sort({"totalWorks": -1})
            .project({
                "subject": "$_id",
                "graphCount": 1,
                "totalNodes": 1,
                "totalWorks": 1,
                "avgNodesPerGraph": {"$round": ["$avgNodesPerGraph", 1]}
            })
        )


TEMPLATES: Dict[str, Callable[[], AggregationBuilder]] = {
    "user_stats": AggregationTemplates.user_stats,
    "popular_works": AggregationTemplates.popular_works,
    "contribution_ranking": AggregationTemplates.contribution_ranking,
    "subject_distribution": AggregationTemplates.subject_distribution,
    "user_activity_analysis": AggregationTemplates.user_activity_analysis,
    "knowledge_graph_usage": AggregationTemplates.knowledge_graph_usage,
}
