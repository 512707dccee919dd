"""
Aggregation pipeline optimizer.

Rewrites a pipeline into an equivalent, cheaper one. The rules run in a
fixed order, each on the output of the previous one:

1. hoist $match stages as early as the fields they read allow
2. merge adjacent $match stages
3. move a $limit directly behind the $sort it follows (top-k)
4. merge adjacent $project stages
5. apply the same rules to $lookup and $facet sub-pipelines

Everything here is pure: no I/O, and the input pipeline is never mutated.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from inspi_db.config import settings
from inspi_db.models.pipeline import (
    AddFieldsStage,
    BaseStage,
    FacetStage,
    LimitStage,
    LookupStage,
    MatchStage,
    ProjectStage,
    SkipStage,
    SortStage,
    UnwindStage,
    copy_pipeline,
    parse_pipeline,
    pipeline_to_mongo,
)

logger = logging.getLogger(__name__)

MATCH_MERGE_STRATEGIES = ("and", "overwrite")

ALREADY_OPTIMAL_MESSAGE = "Pipeline already optimal"

_LOGICAL_OPERATORS = {"$and", "$or", "$nor"}


def match_field_references(query: Mapping[str, Any]) -> Optional[Set[str]]:
    """
    Field paths a $match filter reads.

    Returns None when the filter uses a top-level operator whose field
    references cannot be read off the document ($expr, $where, $text, ...).
    """
    fields: Set[str] = set()
    for key, value in query.items():
        if key in _LOGICAL_OPERATORS:
            if not isinstance(value, list):
                return None
            for clause in value:
                if not isinstance(clause, Mapping):
                    return None
                nested = match_field_references(clause)
                if nested is None:
                    return None
                fields |= nested
        elif key.startswith("$"):
            return None
        else:
            fields.add(key)
    return fields


def _paths_overlap(left: str, right: str) -> bool:
    return left == right or left.startswith(right + ".") or right.startswith(left + ".")


def _overlaps_any(path: str, fields: Set[str]) -> bool:
    return any(_paths_overlap(path, field) for field in fields)


def _is_plain_inclusion(value: Any) -> bool:
    return isinstance(value, (bool, int, float)) and bool(value)


def _is_exclusion(value: Any) -> bool:
    return isinstance(value, (bool, int, float)) and not value


def _project_is_inclusion(spec: Dict[str, Any]) -> bool:
    """True if the $project keeps only the fields it lists."""
    if any(not _is_exclusion(value) for key, value in spec.items() if key != "_id"):
        return True
    return list(spec) == ["_id"] and not _is_exclusion(spec["_id"])


def _project_keeps_field(spec: Dict[str, Any], path: str) -> bool:
    """True if an inclusion $project passes ``path`` through unchanged."""
    if path == "_id" or path.startswith("_id."):
        return _is_plain_inclusion(spec.get("_id", 1))
    return any(
        key != "_id" and _is_plain_inclusion(value) and (path == key or path.startswith(key + "."))
        for key, value in spec.items()
    )


def _stage_rewrites_fields(stage: BaseStage, fields: Set[str]) -> bool:
    """True if ``stage`` may change the value of any of ``fields``."""
    if isinstance(stage, SortStage):
        return False
    if isinstance(stage, ProjectStage):
        # Inclusion mode drops every unlisted field and computed keys replace
        # their value, so only plainly included fields survive.
        if _project_is_inclusion(stage.spec):
            return not all(_project_keeps_field(stage.spec, field) for field in fields)
        return any(_overlaps_any(key, fields) for key in stage.spec)
    if isinstance(stage, AddFieldsStage):
        return any(_overlaps_any(key, fields) for key in stage.spec)
    if isinstance(stage, UnwindStage):
        if stage.include_array_index and _overlaps_any(stage.include_array_index, fields):
            return True
        return _overlaps_any(stage.field, fields)
    if isinstance(stage, LookupStage):
        return _overlaps_any(stage.as_, fields)
    # $group, $limit, $skip, $sample and $facet change the document set itself
    return True


def _can_cross(stage: BaseStage, fields: Optional[Set[str]]) -> bool:
    if isinstance(stage, MatchStage):
        return False
    if isinstance(stage, SortStage):
        return True
    if fields is None:
        return False
    return not _stage_rewrites_fields(stage, fields)


def hoist_match_stages(pipeline: List[BaseStage]) -> List[BaseStage]:
    """Move every $match as early as possible, keeping $match order."""
    result: List[BaseStage] = []
    for stage in pipeline:
        if not isinstance(stage, MatchStage):
            result.append(stage)
            continue

        fields = match_field_references(stage.filter)
        position = len(result)
        while position > 0 and _can_cross(result[position - 1], fields):
            position -= 1
        result.insert(position, stage)
    return result


def merge_match_filters(
    base: Dict[str, Any],
    extra: Dict[str, Any],
    strategy: str = "and"
) -> Dict[str, Any]:
    """
    Field-wise union of two $match filters.

    With the "overwrite" strategy the later filter wins on a key
    collision. With "and", colliding predicates are both kept inside an
    explicit $and list.
    """
    merged = dict(base)
    for key, value in extra.items():
        if key not in merged or merged[key] == value:
            merged[key] = value
        elif strategy == "overwrite":
            merged[key] = value
        elif key == "$and":
            merged["$and"] = [*merged["$and"], *value]
        else:
            previous = merged.pop(key)
            merged["$and"] = [*merged.get("$and", []), {key: previous}, {key: value}]
    return merged


def merge_adjacent_matches(pipeline: List[BaseStage], strategy: str = "and") -> List[BaseStage]:
    """Collapse every run of consecutive $match stages into one."""
    result: List[BaseStage] = []
    for stage in pipeline:
        if isinstance(stage, MatchStage) and result and isinstance(result[-1], MatchStage):
            result[-1] = MatchStage(filter=merge_match_filters(result[-1].filter, stage.filter, strategy))
        else:
            result.append(stage)
    return result


def move_limit_after_sort(pipeline: List[BaseStage]) -> List[BaseStage]:
    """
    Place a $limit directly behind the $sort it follows.

    Only $skip stages are crossed. The moved limit grows by the skipped
    count so the same documents come out: [$sort, $skip 5, $limit 10]
    becomes [$sort, $limit 15, $skip 5].
    """
    result = list(pipeline)
    for index in range(len(result)):
        if not isinstance(result[index], SortStage):
            continue

        skipped = 0
        cursor = index + 1
        while cursor < len(result) and isinstance(result[cursor], SkipStage):
            skipped += result[cursor].count
            cursor += 1

        if cursor > index + 1 and cursor < len(result) and isinstance(result[cursor], LimitStage):
            limit = result.pop(cursor)
            result.insert(index + 1, LimitStage(count=limit.count + skipped))
    return result


def merge_adjacent_projects(pipeline: List[BaseStage]) -> List[BaseStage]:
    """Collapse consecutive $project stages; later keys overwrite earlier ones."""
    result: List[BaseStage] = []
    for stage in pipeline:
        if isinstance(stage, ProjectStage) and result and isinstance(result[-1], ProjectStage):
            result[-1] = ProjectStage(spec={**result[-1].spec, **stage.spec})
        else:
            result.append(stage)
    return result


def optimize_sub_pipelines(
    pipeline: List[BaseStage],
    optimize: Callable[[List[BaseStage]], List[BaseStage]]
) -> List[BaseStage]:
    """Apply ``optimize`` to every $lookup and $facet sub-pipeline."""
    result: List[BaseStage] = []
    for stage in pipeline:
        if isinstance(stage, LookupStage) and stage.pipeline is not None:
            stage = stage.model_copy(update={"pipeline": optimize(stage.pipeline)})
        elif isinstance(stage, FacetStage):
            stage = stage.model_copy(
                update={"facets": {name: optimize(sub) for name, sub in stage.facets.items()}}
            )
        result.append(stage)
    return result


def optimize_pipeline(pipeline: List[Any], match_merge_strategy: str = "and") -> List[BaseStage]:
    """
    Optimize a pipeline.

    Args:
        pipeline: Stage models or raw stage documents
        match_merge_strategy: "and" or "overwrite", see merge_match_filters

    Returns:
        A new, optimized pipeline of stage models
    """
    def optimize(stages: List[BaseStage]) -> List[BaseStage]:
        optimized = hoist_match_stages(stages)
        optimized = merge_adjacent_matches(optimized, match_merge_strategy)
        optimized = move_limit_after_sort(optimized)
        optimized = merge_adjacent_projects(optimized)
        return optimize_sub_pipelines(optimized, optimize)

    return optimize(copy_pipeline(parse_pipeline(pipeline)))


def _first_index(pipeline: List[BaseStage], stage_type: type) -> int:
    for index, stage in enumerate(pipeline):
        if isinstance(stage, stage_type):
            return index
    return -1


def _count(pipeline: List[BaseStage], stage_type: type) -> int:
    return sum(1 for stage in pipeline if isinstance(stage, stage_type))


def _sort_limit_pairs(pipeline: List[BaseStage]) -> int:
    return sum(
        1 for current, following in zip(pipeline, pipeline[1:])
        if isinstance(current, SortStage) and isinstance(following, LimitStage)
    )


def get_optimization_messages(original: List[Any], optimized: List[Any]) -> List[str]:
    """
    Describe what the optimizer changed between two pipelines.

    Args:
        original: Pipeline before optimization
        optimized: Pipeline after optimization

    Returns:
        list: Human-readable messages; ["Pipeline already optimal"] when the
        pipelines are structurally equal
    """
    original = parse_pipeline(original)
    optimized = parse_pipeline(optimized)

    if pipeline_to_mongo(original) == pipeline_to_mongo(optimized):
        return [ALREADY_OPTIMAL_MESSAGE]

    messages: List[str] = []

    if len(original) > len(optimized):
        messages.append(f"Pipeline stages reduced from {len(original)} to {len(optimized)}")
    elif len(original) < len(optimized):
        messages.append(f"Pipeline stage count changed from {len(original)} to {len(optimized)}")

    if _first_index(original, MatchStage) > 0 and _first_index(optimized, MatchStage) == 0:
        messages.append("$match moved forward to the start of the pipeline")

    merged_matches = _count(original, MatchStage) - _count(optimized, MatchStage)
    if merged_matches > 0:
        messages.append(f"{merged_matches} $match stage(s) merged")

    merged_projects = _count(original, ProjectStage) - _count(optimized, ProjectStage)
    if merged_projects > 0:
        messages.append(f"{merged_projects} $project stage(s) merged")

    if _sort_limit_pairs(optimized) > _sort_limit_pairs(original):
        messages.append("$limit moved directly after $sort")

    if not messages:
        if [stage.operator for stage in original] == [stage.operator for stage in optimized]:
            messages.append("Sub-pipelines optimized")
        else:
            messages.append("Pipeline stages reordered")

    return messages


class PipelineOptimizer:
    """Pipeline optimizer bound to a $match merge strategy."""

    def __init__(self, match_merge_strategy: Optional[str] = None):
        strategy = match_merge_strategy or settings.match_merge_strategy
        if strategy not in MATCH_MERGE_STRATEGIES:
            raise ValueError(
                f"match_merge_strategy must be one of {MATCH_MERGE_STRATEGIES}, got '{strategy}'"
            )
        self.match_merge_strategy = strategy

    def optimize(self, pipeline: List[Any]) -> List[BaseStage]:
        optimized = optimize_pipeline(pipeline, self.match_merge_strategy)
        logger.debug(
            f"[PipelineOptimizer] {len(pipeline)} stages in, {len(optimized)} stages out",
            extra={"stages_in": len(pipeline), "stages_out": len(optimized)}
        )
        return optimized

    def get_optimization_messages(self, original: List[Any], optimized: List[Any]) -> List[str]:
        return get_optimization_messages(original, optimized)
