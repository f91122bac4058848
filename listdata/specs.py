from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import regex
from pydantic import BaseModel, Field, model_validator

from listdata.config import DEFAULT_PAGE_SIZE


class FilterOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    MATCHES = "matches"
    GREATER_THAN = "greater_than"
    GREATER_OR_EQUAL = "greater_or_equal"
    LESS_THAN = "less_than"
    LESS_OR_EQUAL = "less_or_equal"
    RANGE = "range"
    BOOLEAN_EQUALS = "boolean_equals"
    ONE_OF = "one_of"
    NOT_ONE_OF = "not_one_of"


STRING_OPERATORS = {
    FilterOperator.CONTAINS,
    FilterOperator.STARTS_WITH,
    FilterOperator.ENDS_WITH,
    FilterOperator.MATCHES,
}

ORDERING_OPERATORS = {
    FilterOperator.GREATER_THAN,
    FilterOperator.GREATER_OR_EQUAL,
    FilterOperator.LESS_THAN,
    FilterOperator.LESS_OR_EQUAL,
    FilterOperator.RANGE,
}

MEMBERSHIP_OPERATORS = {FilterOperator.ONE_OF, FilterOperator.NOT_ONE_OF}


class Predicate(BaseModel):
    """
    A single typed filter condition.

    `value` carries the comparison operand for the scalar operators, `values` the set for
    one_of / not_one_of, and `min` / `max` the bounds of a range.
    """
    field: str
    operator: FilterOperator
    value: Any = None
    values: List[Any] = Field(default_factory=list)
    min: Any = None
    max: Any = None
    include_min: bool = True
    include_max: bool = True
    case_sensitive: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_operands(self):
        op = self.operator
        if op == FilterOperator.RANGE:
            if self.min is None and self.max is None:
                raise ValueError("range predicate needs at least one of min / max")
        elif op in MEMBERSHIP_OPERATORS:
            if not self.values:
                raise ValueError(f"{op.value} predicate needs a non-empty values list")
        elif self.value is None:
            raise ValueError(f"{op.value} predicate needs a value")

        if op == FilterOperator.MATCHES:
            try:
                regex.compile(str(self.value))
            except regex.error as e:
                raise ValueError(f"invalid pattern: {e}") from e
        return self


class FilterSpec(BaseModel):
    predicates: List[Predicate] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def fields(self) -> List[str]:
        return [p.field for p in self.predicates]


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortKey(BaseModel):
    field: str
    direction: SortDirection = SortDirection.ASC

    model_config = {"frozen": True}


class SortSpec(BaseModel):
    keys: List[SortKey] = Field(default_factory=list)

    model_config = {"frozen": True}


class SearchSpec(BaseModel):
    query: str = ""
    fields: List[str] = Field(default_factory=list)
    max_results: Optional[int] = Field(default=None, ge=1)
    field_weights: Dict[str, float] = Field(default_factory=dict)
    enable_fuzzy: bool = False
    enable_highlighting: bool = True

    model_config = {"frozen": True}

    @property
    def is_active(self) -> bool:
        return bool(self.query.strip())


class OffsetPagination(BaseModel):
    kind: Literal["offset"] = "offset"
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    model_config = {"frozen": True}


class CursorPagination(BaseModel):
    kind: Literal["cursor"] = "cursor"
    cursor: Optional[str] = None
    page_size: int = DEFAULT_PAGE_SIZE

    model_config = {"frozen": True}


PaginationSpec = Annotated[Union[OffsetPagination, CursorPagination], Field(discriminator="kind")]


class PaginationMetadata(BaseModel):
    mode: Literal["offset", "cursor"]
    total_items: int
    total_pages: int
    page_size: int
    current_page: Optional[int] = None
    next_cursor: Optional[str] = None
    previous_cursor: Optional[str] = None
    has_next: bool = False
    has_previous: bool = False


class HighlightSpan(BaseModel):
    field: str
    start: int
    end: int
    text: str


class SearchResult(BaseModel):
    score: float = 0.0
    highlights: List[HighlightSpan] = Field(default_factory=list)
    snippets: Dict[str, str] = Field(default_factory=dict)


class SearchMetrics(BaseModel):
    total_results: int = 0
    query_time_ms: float = 0.0
    top_terms: List[str] = Field(default_factory=list)
    field_match_counts: Dict[str, int] = Field(default_factory=dict)


class Page(BaseModel):
    items: List[Any]
    pagination: PaginationMetadata
    search_results: Optional[List[SearchResult]] = None
    search_metrics: Optional[SearchMetrics] = None

    @property
    def total(self) -> int:
        return self.pagination.total_items
