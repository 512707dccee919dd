"""
Pydantic models for aggregation pipeline stages.

Every stage is exactly one variant of ``Stage``. Lookup and Facet stages
nest full pipelines, which are themselves lists of stages.
"""

from collections.abc import Mapping
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from inspi_db.exceptions import InvalidPipelineStageError


SortDirection = Union[Literal[1, -1], Dict[str, Any]]


class BaseStage(BaseModel):
    """Common behaviour for pipeline stages."""

    model_config = ConfigDict(populate_by_name=True)

    operator: ClassVar[str] = ""

    def body(self) -> Any:
        raise NotImplementedError

    def to_mongo(self) -> Dict[str, Any]:
        """Render the stage as a driver document, e.g. ``{"$limit": 10}``."""
        return {self.operator: self.body()}


class MatchStage(BaseStage):
    kind: Literal["match"] = "match"
    filter: Dict[str, Any] = Field(default_factory=dict)
    operator: ClassVar[str] = "$match"

    def body(self) -> Dict[str, Any]:
        return dict(self.filter)


class GroupStage(BaseStage):
    kind: Literal["group"] = "group"
    spec: Dict[str, Any]
    operator: ClassVar[str] = "$group"

    def body(self) -> Dict[str, Any]:
        return dict(self.spec)


class SortStage(BaseStage):
    kind: Literal["sort"] = "sort"
    spec: Dict[str, SortDirection] = Field(min_length=1)
    operator: ClassVar[str] = "$sort"

    def body(self) -> Dict[str, Any]:
        return dict(self.spec)


class LimitStage(BaseStage):
    kind: Literal["limit"] = "limit"
    count: int = Field(gt=0)
    operator: ClassVar[str] = "$limit"

    def body(self) -> int:
        return self.count


class SkipStage(BaseStage):
    kind: Literal["skip"] = "skip"
    count: int = Field(ge=0)
    operator: ClassVar[str] = "$skip"

    def body(self) -> int:
        return self.count


class ProjectStage(BaseStage):
    kind: Literal["project"] = "project"
    spec: Dict[str, Any] = Field(min_length=1)
    operator: ClassVar[str] = "$project"

    def body(self) -> Dict[str, Any]:
        return dict(self.spec)


class LookupStage(BaseStage):
    """Join against a foreign collection, optionally through a sub-pipeline."""
    kind: Literal["lookup"] = "lookup"
    from_: str = Field(alias="from", min_length=1)
    as_: str = Field(alias="as", min_length=1)
    local_field: Optional[str] = Field(default=None, alias="localField")
    foreign_field: Optional[str] = Field(default=None, alias="foreignField")
    let: Optional[Dict[str, Any]] = None
    pipeline: Optional[List["Stage"]] = None
    operator: ClassVar[str] = "$lookup"

    def body(self) -> Dict[str, Any]:
        spec: Dict[str, Any] = {"from": self.from_}
        if self.local_field is not None:
            spec["localField"] = self.local_field
        if self.foreign_field is not None:
            spec["foreignField"] = self.foreign_field
        if self.let is not None:
            spec["let"] = dict(self.let)
        if self.pipeline is not None:
            spec["pipeline"] = pipeline_to_mongo(self.pipeline)
        spec["as"] = self.as_
        return spec


class UnwindStage(BaseStage):
    kind: Literal["unwind"] = "unwind"
    path: str = Field(min_length=2, pattern=r"^\$")
    preserve_null_and_empty_arrays: Optional[bool] = None
    include_array_index: Optional[str] = None
    operator: ClassVar[str] = "$unwind"

    @property
    def field(self) -> str:
        """Unwound field path without the leading '$'."""
        return self.path[1:]

    def body(self) -> Dict[str, Any]:
        spec: Dict[str, Any] = {"path": self.path}
        if self.preserve_null_and_empty_arrays is not None:
            spec["preserveNullAndEmptyArrays"] = self.preserve_null_and_empty_arrays
        if self.include_array_index is not None:
            spec["includeArrayIndex"] = self.include_array_index
        return spec


class AddFieldsStage(BaseStage):
    kind: Literal["addFields"] = "addFields"
    spec: Dict[str, Any] = Field(min_length=1)
    operator: ClassVar[str] = "$addFields"

    def body(self) -> Dict[str, Any]:
        return dict(self.spec)


class FacetStage(BaseStage):
    kind: Literal["facet"] = "facet"
    facets: Dict[str, List["Stage"]] = Field(min_length=1)
    operator: ClassVar[str] = "$facet"

    def body(self) -> Dict[str, Any]:
        return {name: pipeline_to_mongo(sub) for name, sub in self.facets.items()}


class SampleStage(BaseStage):
    kind: Literal["sample"] = "sample"
    size: int = Field(gt=0)
    operator: ClassVar[str] = "$sample"

    def body(self) -> Dict[str, Any]:
        return {"size": self.size}


Stage = Annotated[
    Union[
        MatchStage,
        GroupStage,
        SortStage,
        LimitStage,
        SkipStage,
        ProjectStage,
        LookupStage,
        UnwindStage,
        AddFieldsStage,
        FacetStage,
        SampleStage,
    ],
    Field(discriminator="kind"),
]

Pipeline = List[Stage]

LookupStage.model_rebuild()
FacetStage.model_rebuild()


def pipeline_to_mongo(pipeline: List[BaseStage]) -> List[Dict[str, Any]]:
    """Render a pipeline as a list of driver documents."""
    return [stage.to_mongo() for stage in pipeline]


def copy_pipeline(pipeline: List[BaseStage]) -> List[BaseStage]:
    """Deep copy of a pipeline; the copy shares no mutable state with the input."""
    return [stage.model_copy(deep=True) for stage in pipeline]


def _build_lookup(spec: Any) -> LookupStage:
    if not isinstance(spec, Mapping):
        raise InvalidPipelineStageError("$lookup expects a document")
    values = dict(spec)
    if values.get("pipeline") is not None:
        values["pipeline"] = parse_pipeline(values["pipeline"])
    return LookupStage(**values)


def _build_unwind(spec: Any) -> UnwindStage:
    if isinstance(spec, str):
        return UnwindStage(path=spec)
    if not isinstance(spec, Mapping):
        raise InvalidPipelineStageError("$unwind expects a path string or a document")
    return UnwindStage(
        path=spec.get("path", ""),
        preserve_null_and_empty_arrays=spec.get("preserveNullAndEmptyArrays"),
        include_array_index=spec.get("includeArrayIndex"),
    )


def _build_facet(spec: Any) -> FacetStage:
    if not isinstance(spec, Mapping):
        raise InvalidPipelineStageError("$facet expects a document")
    return FacetStage(facets={name: parse_pipeline(sub) for name, sub in spec.items()})


def _build_sample(spec: Any) -> SampleStage:
    if not isinstance(spec, Mapping) or "size" not in spec:
        raise InvalidPipelineStageError("$sample expects a document with a size")
    return SampleStage(size=spec["size"])


_STAGE_BUILDERS = {
    "$match": lambda spec: MatchStage(filter=spec),
    "$group": lambda spec: GroupStage(spec=spec),
    "$sort": lambda spec: SortStage(spec=spec),
    "$limit": lambda spec: LimitStage(count=spec),
    "$skip": lambda spec: SkipStage(count=spec),
    "$project": lambda spec: ProjectStage(spec=spec),
    "$lookup": _build_lookup,
    "$unwind": _build_unwind,
    "$addFields": lambda spec: AddFieldsStage(spec=spec),
    "$facet": _build_facet,
    "$sample": _build_sample,
}


def parse_stage(document: Union[BaseStage, Mapping]) -> BaseStage:
    """
    Convert a raw driver stage document into a typed stage.

    Args:
        document: A stage model (returned as-is) or a mapping with exactly one
            stage operator key, e.g. ``{"$match": {"status": "active"}}``

    Returns:
        The typed stage

    Raises:
        InvalidPipelineStageError: If the document is not a single known stage
    """
    if isinstance(document, BaseStage):
        return document
    if not isinstance(document, Mapping) or len(document) != 1:
        raise InvalidPipelineStageError(
            f"A pipeline stage must be a document with exactly one operator, got: {document!r}"
        )

    operator, spec = next(iter(document.items()))
    builder = _STAGE_BUILDERS.get(operator)
    if builder is None:
        raise InvalidPipelineStageError(f"Unsupported pipeline stage: {operator}")

    try:
        return builder(spec)
    except ValidationError as e:
        raise InvalidPipelineStageError(f"Invalid {operator} stage: {e}", original_error=e) from e


def parse_pipeline(documents: Any) -> List[BaseStage]:
    """Convert a list of raw stage documents (or stage models) into typed stages."""
    if isinstance(documents, (str, bytes, Mapping)) or not hasattr(documents, "__iter__"):
        raise InvalidPipelineStageError("A pipeline must be a list of stages")
    return [parse_stage(document) for document in documents]
