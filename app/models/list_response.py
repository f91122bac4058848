from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from listdata.specs import PaginationMetadata, SearchMetrics, SearchResult

class ListPageResponse(BaseModel):
    entity_kind: str
    items: List[Dict[str, Any]]
    pagination: PaginationMetadata
    search_results: Optional[List[SearchResult]] = None
    search_metrics: Optional[SearchMetrics] = None
