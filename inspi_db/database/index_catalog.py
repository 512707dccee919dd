"""
Index definitions for every collection managed by the platform.

The catalog is authored data. ``IndexManager`` reconciles it against a
live database and ``IndexUsageAnalyzer`` scores the indexes it lists.
"""

from collections import OrderedDict
from typing import Dict, List, Optional

from inspi_db.models.indexes import IndexDefinition, IndexOptions, IndexType


# Users collection indexes
USER_INDEXES: List[IndexDefinition] = [
    IndexDefinition(
        name="users_email_unique",
        collection="users",
        fields={"email": 1},
        options=IndexOptions(unique=True),
        type=IndexType.SINGLE,
        description="Unique user email, used for login and duplicate checks",
        estimated_size="~50KB",
        usage="high"
    ),
    IndexDefinition(
        name="users_subscription_status",
        collection="users",
        fields={"subscription.type": 1, "subscription.status": 1},
        type=IndexType.COMPOUND,
        description="Subscription type and status, used for subscription queries and statistics",
        estimated_size="~30KB",
        usage="high"
    ),
    IndexDefinition(
        name="users_active_status",
        collection="users",
        fields={"stats.lastActiveAt": -1, "status": 1},
        options=IndexOptions(partial_filter_expression={"status": "active"}),
        type=IndexType.PARTIAL,
        description="Active users by last activity, used for activity statistics and sorting",
        estimated_size="~40KB",
        usage="medium"
    ),
    IndexDefinition(
        name="users_contribution_score",
        collection="users",
        fields={"stats.contributionScore": -1},
        options=IndexOptions(
            partial_filter_expression={"stats.contributionScore": {"$gt": 0}}
        ),
        type=IndexType.PARTIAL,
        description="Contribution score, used for the leaderboard",
        estimated_size="~35KB",
        usage="medium"
    ),
    IndexDefinition(
        name="users_created_at",
        collection="users",
        fields={"createdAt": -1},
        type=IndexType.SINGLE,
        description="Registration time, used for sign-up statistics",
        estimated_size="~25KB",
        usage="low"
    ),
]

# Works collection indexes
WORK_INDEXES: List[IndexDefinition] = [
    IndexDefinition(
        name="works_author_status",
        collection="works",
        fields={"authorId": 1, "status": 1, "updatedAt": -1},
        type=IndexType.COMPOUND,
        description="Works by author and status, used for a user's work list",
        estimated_size="~80KB",
        usage="high"
    ),
    IndexDefinition(
        name="works_published_public",
        collection="works",
        fields={"status": 1, "visibility": 1, "publishedAt": -1},
        options=IndexOptions(
            partial_filter_expression={"status": "published", "visibility": "public"}
        ),
        type=IndexType.PARTIAL,
        description="Published public works, used for the square and search",
        estimated_size="~120KB",
        usage="high"
    ),
    IndexDefinition(
        name="works_subject_grade",
        collection="works",
        fields={"subject": 1, "grade": 1, "stats.rating": -1},
        options=IndexOptions(
            partial_filter_expression={"status": "published", "visibility": "public"}
        ),
        type=IndexType.COMPOUND,
        description="Subject and grade, used for category browsing",
        estimated_size="~90KB",
        usage="high"
    ),
    IndexDefinition(
        name="works_tags",
        collection="works",
        fields={"tags": 1, "stats.views": -1},
        type=IndexType.COMPOUND,
        description="Tags, used for tag filtering and recommendations",
        estimated_size="~70KB",
        usage="medium"
    ),
    IndexDefinition(
        name="works_stats_views",
        collection="works",
        fields={"stats.views": -1, "publishedAt": -1},
        options=IndexOptions(
            partial_filter_expression={"status": "published", "stats.views": {"$gt": 0}}
        ),
        type=IndexType.PARTIAL,
        description="View count, used for trending works",
        estimated_size="~60KB",
        usage="high"
    ),
    IndexDefinition(
        name="works_stats_reuses",
        collection="works",
        fields={"stats.reuses": -1, "publishedAt": -1},
        options=IndexOptions(
            partial_filter_expression={"status": "published", "stats.reuses": {"$gt": 0}}
        ),
        type=IndexType.PARTIAL,
        description="Reuse count, used for the reuse leaderboard",
        estimated_size="~45KB",
        usage="medium"
    ),
    IndexDefinition(
        name="works_text_search",
        collection="works",
        fields={"title": "text", "description": "text", "tags": "text"},
        options=IndexOptions(
            weights={"title": 10, "description": 5, "tags": 1},
            default_language="none"
        ),
        type=IndexType.TEXT,
        description="Full-text search over title, description and tags",
        estimated_size="~200KB",
        usage="high"
    ),
]

# Knowledge graph and graph node indexes
KNOWLEDGE_GRAPH_INDEXES: List[IndexDefinition] = [
    IndexDefinition(
        name="graphs_subject_preset",
        collection="knowledgeGraphs",
        fields={"subject": 1, "metadata.isPreset": 1},
        type=IndexType.COMPOUND,
        description="Preset graphs per subject",
        estimated_size="~15KB",
        usage="high"
    ),
    IndexDefinition(
        name="graphs_author_visibility",
        collection="knowledgeGraphs",
        fields={"metadata.authorId": 1, "metadata.visibility": 1},
        options=IndexOptions(
            partial_filter_expression={"metadata.authorId": {"$exists": True}}
        ),
        type=IndexType.PARTIAL,
        description="User-owned graphs by visibility",
        estimated_size="~20KB",
        usage="medium"
    ),
    IndexDefinition(
        name="graph_nodes_type_level",
        collection="graphNodes",
        fields={"graphId": 1, "type": 1, "level": 1},
        type=IndexType.COMPOUND,
        description="Graph nodes by type and level",
        estimated_size="~40KB",
        usage="high"
    ),
    IndexDefinition(
        name="graph_nodes_works",
        collection="graphNodes",
        fields={"graphId": 1, "works": 1},
        options=IndexOptions(
            partial_filter_expression={"works.0": {"$exists": True}}
        ),
        type=IndexType.PARTIAL,
        description="Nodes that have works mounted on them",
        estimated_size="~30KB",
        usage="medium"
    ),
]

# Contribution log indexes
CONTRIBUTION_LOG_INDEXES: List[IndexDefinition] = [
    IndexDefinition(
        name="contribution_logs_user_date",
        collection="contributionLogs",
        fields={"userId": 1, "createdAt": -1},
        type=IndexType.COMPOUND,
        description="Contribution history per user",
        estimated_size="~100KB",
        usage="high"
    ),
    IndexDefinition(
        name="contribution_logs_type_date",
        collection="contributionLogs",
        fields={"type": 1, "createdAt": -1},
        type=IndexType.COMPOUND,
        description="Contributions by type, used for statistics",
        estimated_size="~80KB",
        usage="medium"
    ),
    IndexDefinition(
        name="contribution_logs_ttl",
        collection="contributionLogs",
        fields={"createdAt": 1},
        options=IndexOptions(expire_after_seconds=31536000),  # one year
        type=IndexType.TTL,
        description="Expires contribution logs after one year",
        estimated_size="~50KB",
        usage="low"
    ),
]

# Session indexes
SESSION_INDEXES: List[IndexDefinition] = [
    IndexDefinition(
        name="sessions_user_id",
        collection="sessions",
        fields={"userId": 1, "updatedAt": -1},
        type=IndexType.COMPOUND,
        description="Sessions per user",
        estimated_size="~60KB",
        usage="high"
    ),
    IndexDefinition(
        name="sessions_ttl",
        collection="sessions",
        fields={"expiresAt": 1},
        # expiresAt holds the expiry instant itself
        options=IndexOptions(expire_after_seconds=0),
        type=IndexType.TTL,
        description="Removes sessions once expiresAt has passed",
        estimated_size="~30KB",
        usage="high"
    ),
]

ALL_INDEXES: List[IndexDefinition] = [
    *USER_INDEXES,
    *WORK_INDEXES,
    *KNOWLEDGE_GRAPH_INDEXES,
    *CONTRIBUTION_LOG_INDEXES,
    *SESSION_INDEXES,
]


def indexes_by_collection(
    catalog: Optional[List[IndexDefinition]] = None
) -> "OrderedDict[str, List[IndexDefinition]]":
    """Group catalog entries by collection, in catalog order."""
    groups: "OrderedDict[str, List[IndexDefinition]]" = OrderedDict()
    for definition in (ALL_INDEXES if catalog is None else catalog):
        groups.setdefault(definition.collection, []).append(definition)
    return groups


CATALOG_COLLECTIONS: List[str] = list(indexes_by_collection())


def get_index_definition(
    collection: str,
    index_name: str,
    catalog: Optional[List[IndexDefinition]] = None
) -> Optional[IndexDefinition]:
    """Look up a catalog entry by collection and name."""
    for definition in (ALL_INDEXES if catalog is None else catalog):
        if definition.collection == collection and definition.name == index_name:
            return definition
    return None


def find_duplicate_names(catalog: Optional[List[IndexDefinition]] = None) -> Dict[str, List[str]]:
    """Index names that appear more than once within a collection."""
    duplicates: Dict[str, List[str]] = {}
    for collection, definitions in indexes_by_collection(catalog).items():
        seen = set()
        for definition in definitions:
            if definition.name in seen:
                duplicates.setdefault(collection, []).append(definition.name)
            seen.add(definition.name)
    return duplicates
