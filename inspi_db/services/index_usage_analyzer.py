"""
Index usage analysis.

Scores each index by how often it is used relative to its size, and turns
those scores into keep/optimize/remove recommendations.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from inspi_db.config import settings
from inspi_db.models.indexes import IndexUsageAnalysis, IndexUsageStat

if TYPE_CHECKING:
    from inspi_db.services.index_manager import IndexManager

logger = logging.getLogger(__name__)

PRIMARY_KEY_INDEX = "_id_"

HEALTHY_USAGE_MESSAGE = "Index usage looks healthy; no optimization needed"


def calculate_efficiency(usage_count: int, size: int) -> float:
    """
    Efficiency score in [0, 100].

    Ten points per use per KB of index, capped at 100. Unused indexes score
    0; a missing or zero size counts as one byte.
    """
    if usage_count <= 0:
        return 0.0
    size_kb = (size or 1) / 1024
    return max(0.0, min(100.0, usage_count / size_kb * 10))


def get_recommendation(usage_count: int, efficiency: float, threshold: float) -> str:
    """remove for unused indexes, optimize below the threshold, keep otherwise."""
    if usage_count <= 0:
        return "remove"
    if efficiency < threshold:
        return "optimize"
    return "keep"


def build_usage_stat(
    collection: str,
    raw: Mapping[str, Any],
    efficiency_threshold: Optional[float] = None
) -> IndexUsageStat:
    """
    Build an IndexUsageStat from one $indexStats document.

    Args:
        collection: Collection the index belongs to
        raw: ``{"name", "accesses": {"ops", "since"}, "indexSizes": {name: bytes}}``
        efficiency_threshold: Score below which a used index should be optimized
    """
    threshold = settings.index_efficiency_threshold if efficiency_threshold is None else efficiency_threshold
    name = raw["name"]
    accesses = raw.get("accesses") or {}
    usage_count = int(accesses.get("ops") or 0)
    size = int((raw.get("indexSizes") or {}).get(name) or 0)
    efficiency = calculate_efficiency(usage_count, size)

    return IndexUsageStat(
        name=name,
        collection=collection,
        size=size,
        usage_count=usage_count,
        last_used=accesses.get("since"),
        efficiency=efficiency,
        recommendation=get_recommendation(usage_count, efficiency, threshold)
    )


def generate_recommendations(
    all_stats: List[IndexUsageStat],
    unused_indexes: List[IndexUsageStat],
    inefficient_indexes: List[IndexUsageStat],
    size_warning_bytes: int
) -> List[str]:
    """Textual recommendations; a single healthy message when there is nothing to do."""
    recommendations: List[str] = []

    if unused_indexes:
        recommendations.append(
            f"Found {len(unused_indexes)} unused index(es); consider dropping them to save storage"
        )

    if inefficient_indexes:
        recommendations.append(
            f"Found {len(inefficient_indexes)} inefficient index(es); consider optimizing queries or rebuilding them"
        )

    total_size = sum(stat.size for stat in all_stats)
    if total_size > size_warning_bytes:
        recommendations.append(
            f"Total index size exceeds {size_warning_bytes // (1024 * 1024)}MB; schedule regular cleanup and optimization"
        )

    if not recommendations:
        recommendations.append(HEALTHY_USAGE_MESSAGE)

    return recommendations


class IndexUsageAnalyzer:
    """Aggregates index usage across collections."""

    def __init__(
        self,
        index_manager: "IndexManager",
        collections: Optional[List[str]] = None,
        size_warning_bytes: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.index_manager = index_manager
        self.collections = collections if collections is not None else index_manager.collections
        self.size_warning_bytes = (
            settings.index_size_warning_bytes if size_warning_bytes is None else size_warning_bytes
        )
        self.logger = logger or logging.getLogger(__name__)

    async def analyze_index_usage(self) -> IndexUsageAnalysis:
        """
        Analyze index usage for every known collection.

        Returns:
            IndexUsageAnalysis: totals, unused and inefficient indexes, and
            recommendations
        """
        all_stats: List[IndexUsageStat] = []
        for collection in self.collections:
            all_stats.extend(await self.index_manager.get_index_stats(collection))

        unused_indexes = [
            stat for stat in all_stats
            if stat.usage_count == 0 and stat.name != PRIMARY_KEY_INDEX
        ]
        inefficient_indexes = [stat for stat in all_stats if stat.recommendation == "optimize"]

        recommendations = generate_recommendations(
            all_stats, unused_indexes, inefficient_indexes, self.size_warning_bytes
        )

        self.logger.info(
            f"[IndexUsage] Analyzed {len(all_stats)} indexes: "
            f"{len(unused_indexes)} unused, {len(inefficient_indexes)} inefficient",
            extra={
                "total_indexes": len(all_stats),
                "unused": len(unused_indexes),
                "inefficient": len(inefficient_indexes)
            }
        )

        return IndexUsageAnalysis(
            total_indexes=len(all_stats),
            total_size=sum(stat.size for stat in all_stats),
            unused_indexes=unused_indexes,
            inefficient_indexes=inefficient_indexes,
            recommendations=recommendations
        )

    def summarize(self, analysis: IndexUsageAnalysis) -> Dict[str, Any]:
        """Compact summary for dashboards."""
        return {
            "total_indexes": analysis.total_indexes,
            "total_size": analysis.total_size,
            "unused": [f"{stat.collection}.{stat.name}" for stat in analysis.unused_indexes],
            "inefficient": [f"{stat.collection}.{stat.name}" for stat in analysis.inefficient_indexes],
            "recommendations": analysis.recommendations
        }
