from pydantic import BaseModel, Field
from typing import Optional

from listdata.specs import FilterSpec, OffsetPagination, PaginationSpec, SearchSpec, SortSpec

class ListPageRequest(BaseModel):
    pagination: PaginationSpec = Field(
        default_factory=OffsetPagination,
        description="Offset (page / page_size) or cursor pagination"
    )

    filters: Optional[FilterSpec] = Field(
        default=None,
        description="Predicates that must all hold"
    )

    sort: Optional[SortSpec] = Field(
        default=None,
        description="Sort keys, primary first"
    )

    search: Optional[SearchSpec] = Field(
        default=None,
        description="Free-text query and its options"
    )
