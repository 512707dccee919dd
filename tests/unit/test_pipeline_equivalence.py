"""
Optimized pipelines return the same documents as the pipelines they replace.

Each pipeline is run twice over a small in-memory collection, once as
written and once after optimization, with a minimal evaluator for
$match, $sort, $skip, $limit and $project.
"""

import pytest

from inspi_db.models.pipeline import pipeline_to_mongo
from inspi_db.services.pipeline_optimizer import optimize_pipeline


WORKS = [
    {"_id": 1, "title": "Fractions", "subject": "math", "status": "published", "score": 40, "rank": 3},
    {"_id": 2, "title": "Volcanoes", "subject": "science", "status": "draft", "score": 75, "rank": 1},
    {"_id": 3, "title": "Algebra", "subject": "math", "status": "published", "score": 90, "rank": 6},
    {"_id": 4, "title": "Poetry", "subject": "language", "status": "published", "score": 15, "rank": 8},
    {"_id": 5, "title": "Geometry", "subject": "math", "status": "draft", "score": 60, "rank": 2},
    {"_id": 6, "title": "Cells", "subject": "science", "status": "published", "score": 55, "rank": 5},
    {"_id": 7, "title": "Probability", "subject": "math", "status": "published", "score": 70, "rank": 7},
    {"_id": 8, "title": "Painting", "subject": "art", "status": "archived", "score": 30, "rank": 4},
]

_MISSING = object()


def _get(document, path):
    value = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _condition_holds(value, condition):
    if not (isinstance(condition, dict) and condition and all(key.startswith("$") for key in condition)):
        return value is not _MISSING and value == condition

    for operator, operand in condition.items():
        if operator == "$exists":
            if (value is not _MISSING) != bool(operand):
                return False
        elif operator == "$ne":
            if value is not _MISSING and value == operand:
                return False
        elif operator == "$in":
            if value is _MISSING or value not in operand:
                return False
        elif value is _MISSING:
            return False
        elif operator == "$gt" and not value > operand:
            return False
        elif operator == "$gte" and not value >= operand:
            return False
        elif operator == "$lt" and not value < operand:
            return False
        elif operator == "$lte" and not value <= operand:
            return False
    return True


def _matches(document, query):
    for key, condition in query.items():
        if key == "$and":
            if not all(_matches(document, clause) for clause in condition):
                return False
        elif key == "$or":
            if not any(_matches(document, clause) for clause in condition):
                return False
        elif not _condition_holds(_get(document, key), condition):
            return False
    return True


def _sort(documents, spec):
    # Stable sorts applied from the least significant key
    for field, direction in reversed(list(spec.items())):
        documents = sorted(documents, key=lambda d: _get(d, field), reverse=direction == -1)
    return documents


def _excluded(value):
    return isinstance(value, (bool, int, float)) and not value


def _project(document, spec):
    inclusion = any(not _excluded(value) for key, value in spec.items() if key != "_id")
    inclusion = inclusion or (list(spec) == ["_id"] and not _excluded(spec["_id"]))

    if not inclusion:
        return {key: value for key, value in document.items() if not (key in spec and _excluded(spec[key]))}

    projected = {}
    if "_id" not in spec and "_id" in document:
        projected["_id"] = document["_id"]
    for key, value in spec.items():
        if _excluded(value):
            continue
        if isinstance(value, (bool, int, float)):
            if key in document:
                projected[key] = document[key]
        elif isinstance(value, str) and value.startswith("$"):
            computed = _get(document, value[1:])
            if computed is not _MISSING:
                projected[key] = computed
        else:
            projected[key] = value
    return projected


def _run(pipeline, documents):
    for stage in pipeline:
        (operator, spec), = stage.items()
        if operator == "$match":
            documents = [document for document in documents if _matches(document, spec)]
        elif operator == "$sort":
            documents = _sort(documents, spec)
        elif operator == "$skip":
            documents = documents[spec:]
        elif operator == "$limit":
            documents = documents[:spec]
        elif operator == "$project":
            documents = [_project(document, spec) for document in documents]
        else:
            raise AssertionError(f"Unsupported stage {operator}")
    return documents


PIPELINES = {
    "project_drops_matched_field": [
        {"$match": {"status": "published"}},
        {"$project": {"title": 1}},
        {"$match": {"subject": "math"}},
    ],
    "project_keeps_matched_field": [
        {"$match": {"status": "published"}},
        {"$project": {"title": 1, "subject": 1}},
        {"$match": {"subject": "math"}},
    ],
    "sort_skip_limit": [
        {"$sort": {"score": -1}},
        {"$skip": 2},
        {"$limit": 3},
    ],
    "sort_match_limit": [
        {"$sort": {"rank": 1}},
        {"$match": {"status": "published"}},
        {"$limit": 2},
    ],
    "project_match_sort": [
        {"$project": {"title": 1, "score": 1}},
        {"$match": {"score": {"$gt": 50}}},
        {"$sort": {"score": -1}},
    ],
    "exclusion_of_other_field": [
        {"$project": {"status": 0}},
        {"$match": {"subject": "math"}},
    ],
    "exclusion_of_matched_field": [
        {"$project": {"status": 0}},
        {"$match": {"status": "published"}},
    ],
    "computed_key_from_matched_field": [
        {"$project": {"label": "$subject"}},
        {"$match": {"subject": "math"}},
    ],
    "computed_key_shadows_matched_field": [
        {"$project": {"subject": "$title", "status": 1}},
        {"$match": {"subject": "Algebra"}},
    ],
    "range_bounds_on_same_field": [
        {"$match": {"score": {"$gt": 20}}},
        {"$match": {"score": {"$lt": 80}}},
    ],
    "match_between_skip_and_limit": [
        {"$sort": {"score": 1}},
        {"$skip": 1},
        {"$match": {"status": "published"}},
        {"$limit": 2},
    ],
    "id_excluded_then_matched": [
        {"$project": {"_id": 0, "title": 1}},
        {"$match": {"_id": {"$in": [1, 3]}}},
    ],
    "id_kept_then_matched": [
        {"$project": {"title": 1}},
        {"$match": {"_id": {"$in": [1, 3]}}},
    ],
    "or_filter_after_sort": [
        {"$sort": {"subject": 1}},
        {"$match": {"$or": [{"subject": "art"}, {"score": {"$gte": 70}}]}},
        {"$skip": 1},
        {"$limit": 2},
    ],
    "ne_filter_after_project": [
        {"$project": {"title": 1, "status": 1}},
        {"$match": {"status": {"$ne": "draft"}}},
        {"$sort": {"title": 1}},
    ],
    "exists_then_top_k": [
        {"$match": {"rank": {"$exists": True}}},
        {"$sort": {"rank": -1}},
        {"$skip": 3},
        {"$limit": 2},
    ],
}


@pytest.mark.parametrize("pipeline", list(PIPELINES.values()), ids=list(PIPELINES))
def test_optimized_pipeline_returns_same_documents(pipeline):
    optimized = pipeline_to_mongo(optimize_pipeline(pipeline))

    assert _run(optimized, WORKS) == _run(pipeline, WORKS)


def test_dropped_field_filter_yields_nothing():
    pipeline = PIPELINES["project_drops_matched_field"]

    assert _run(pipeline, WORKS) == []
    assert len(optimize_pipeline(pipeline)) == 3


def test_evaluator_sorts_and_projects():
    pipeline = [{"$sort": {"score": -1}}, {"$limit": 2}, {"$project": {"_id": 0, "title": 1}}]

    assert _run(pipeline, WORKS) == [{"title": "Algebra"}, {"title": "Volcanoes"}]
