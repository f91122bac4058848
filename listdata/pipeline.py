import logging
from contextlib import contextmanager
from typing import Any, Iterable, Optional, Union

from listdata.config import MAX_PAGE_SIZE, SCORE_FIELD
from listdata.exceptions import ListQueryError
from listdata.filters import FilterEvaluator
from listdata.paginator import Paginator, query_fingerprint
from listdata.resolver import FieldResolver, RecordResolver
from listdata.scorer import SearchScorer
from listdata.sorting import SortComparator
from listdata.specs import (
    CursorPagination,
    FilterSpec,
    OffsetPagination,
    Page,
    SearchSpec,
    SortDirection,
    SortKey,
    SortSpec,
)
from listdata.whitelist import FieldWhitelist

logger = logging.getLogger(__name__)

RELEVANCE_ORDER = SortSpec(keys=[SortKey(field=SCORE_FIELD, direction=SortDirection.DESC)])


@contextmanager
def stage(name: str):
    """Tag any engine error raised inside the block with the pipeline stage that produced it."""
    try:
        yield
    except ListQueryError as e:
        if e.stage is None:
            e.stage = name
            if isinstance(e.details, dict):
                e.details.setdefault("stage", name)
        raise


class ListQueryEngine:
    """
    Filter -> search -> sort -> paginate over an in-memory record collection.

    Holds only its configuration (whitelist, resolver, page size limit); every call to
    process() works on its own copies, so one engine can serve concurrent callers.
    """

    def __init__(
        self,
        whitelist: FieldWhitelist,
        resolver: Optional[FieldResolver] = None,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.whitelist = whitelist
        self.resolver = resolver or RecordResolver()
        self.filters = FilterEvaluator(whitelist, self.resolver)
        self.scorer = SearchScorer(whitelist, self.resolver)
        self.sorter = SortComparator(whitelist, self.resolver)
        self.paginator = Paginator(max_page_size)

    def validate(
        self,
        pagination: Union[OffsetPagination, CursorPagination],
        filters: Optional[FilterSpec],
        sort: Optional[SortSpec],
        search: Optional[SearchSpec],
        fingerprint: str,
    ):
        """Reject bad fields, pagination and cursors before touching any record."""
        search_active = search is not None and search.is_active

        with stage("filter"):
            self.filters.validate(filters)
        with stage("search"):
            self.scorer.validate(search)
        with stage("sort"):
            self.sorter.validate(sort, search_active)
        with stage("paginate"):
            self.paginator.start_offset(pagination, fingerprint)

    def process(
        self,
        records: Iterable[Any],
        pagination: Union[OffsetPagination, CursorPagination, None] = None,
        filters: Optional[FilterSpec] = None,
        sort: Optional[SortSpec] = None,
        search: Optional[SearchSpec] = None,
    ) -> Page:
        records = list(records)
        fingerprint = query_fingerprint(filters, sort, search)

        with stage("paginate"):
            pagination = self.paginator.normalize(pagination)
        self.validate(pagination, filters, sort, search, fingerprint)

        with stage("filter"):
            candidates = [r for r in records if self.filters.matches(r, filters)]
        filtered_count = len(candidates)

        results = None
        metrics = None
        if search is not None:
            with stage("search"):
                positions, results, metrics = self.scorer.rank(candidates, search)
                candidates = [candidates[i] for i in positions]

        effective_sort = sort
        if search is not None and search.is_active and (sort is None or not sort.keys):
            effective_sort = RELEVANCE_ORDER

        with stage("sort"):
            scores = [r.score for r in results] if results is not None else None
            order = self.sorter.order(candidates, effective_sort, scores)

        rows = [(candidates[i], results[i] if results is not None else None) for i in order]

        with stage("paginate"):
            page_rows, metadata = self.paginator.paginate(rows, pagination, len(rows), fingerprint)

        logger.debug(
            "list query: input=%d filtered=%d matched=%d returned=%d",
            len(records),
            filtered_count,
            len(rows),
            len(page_rows),
        )

        return Page(
            items=[record for record, _ in page_rows],
            pagination=metadata,
            search_results=[result for _, result in page_rows] if search is not None else None,
            search_metrics=metrics,
        )


def process(
    records: Iterable[Any],
    whitelist: FieldWhitelist,
    pagination: Union[OffsetPagination, CursorPagination, None] = None,
    filters: Optional[FilterSpec] = None,
    sort: Optional[SortSpec] = None,
    search: Optional[SearchSpec] = None,
    resolver: Optional[FieldResolver] = None,
) -> Page:
    return ListQueryEngine(whitelist, resolver).process(records, pagination, filters, sort, search)
