import logging
import uuid
from collections.abc import Mapping
from time import perf_counter
from typing import Any, Callable, Dict, Iterable, Optional

from app.api.errors import list_error_response
from app.models.api_response import APIResponse, Meta
from app.models.list_request import ListPageRequest
from app.models.list_response import ListPageResponse
from listdata.config import MAX_PAGE_SIZE
from listdata.exceptions import ListQueryError, UnknownEntityKindError
from listdata.pipeline import ListQueryEngine
from listdata.resolver import FieldResolver, RecordResolver
from listdata.specs import Page
from listdata.whitelist import FieldWhitelist
from models.payment_attribute import PAYMENT_ATTRIBUTE_FIELDS, PAYMENT_ATTRIBUTE_SEARCH_FIELDS
from models.product import PRODUCT_FIELDS, PRODUCT_SEARCH_FIELDS

logger = logging.getLogger(__name__)


def serialize_record(record: Any) -> Dict[str, Any]:
    if isinstance(record, Mapping):
        return dict(record)
    to_dict = getattr(record, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(vars(record))


class EntityKind:
    """List configuration of one record kind: its whitelist, resolver and response shape."""

    def __init__(
        self,
        name: str,
        whitelist: FieldWhitelist,
        resolver: Optional[FieldResolver] = None,
        serializer: Callable[[Any], Dict[str, Any]] = serialize_record,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.name = name
        self.whitelist = whitelist
        self.engine = ListQueryEngine(whitelist, resolver or RecordResolver(), max_page_size)
        self.serializer = serializer


class ListService:
    def __init__(self):
        self.kinds: Dict[str, EntityKind] = {}

    def register(self, kind: EntityKind) -> EntityKind:
        self.kinds[kind.name] = kind
        return kind

    def get_kind(self, name: str) -> EntityKind:
        kind = self.kinds.get(name)
        if kind is None:
            raise UnknownEntityKindError(
                f"No list configuration registered for '{name}'",
                details={"entity_kind": name},
            )
        return kind

    def process(self, entity_kind: str, records: Iterable[Any], request: ListPageRequest) -> Page:
        kind = self.get_kind(entity_kind)
        return kind.engine.process(
            records,
            pagination=request.pagination,
            filters=request.filters,
            sort=request.sort,
            search=request.search,
        )

    def get_list_page_data(
        self,
        entity_kind: str,
        records: Iterable[Any],
        request: Optional[ListPageRequest] = None,
    ) -> APIResponse[ListPageResponse]:
        request = request or ListPageRequest()
        request_id = uuid.uuid4().hex[:12]

        start_time = perf_counter()

        try:
            page = self.process(entity_kind, records, request)
        except ListQueryError as e:
            logger.warning(
                "List page data failed: kind=%s request_id=%s code=%s stage=%s: %s",
                entity_kind, request_id, e.code, e.stage, e.message,
            )
            return list_error_response(e, Meta(entity_kind=entity_kind, request_id=request_id))

        took_ms = (perf_counter() - start_time) * 1000

        serializer = self.kinds[entity_kind].serializer
        data = ListPageResponse(
            entity_kind=entity_kind,
            items=[serializer(record) for record in page.items],
            pagination=page.pagination,
            search_results=page.search_results,
            search_metrics=page.search_metrics,
        )

        logger.info(
            "List page data: kind=%s request_id=%s total=%d returned=%d took_ms=%.2f",
            entity_kind, request_id, page.total, len(page.items), took_ms,
        )

        return APIResponse(
            status="ok",
            data=data,
            meta=Meta(
                entity_kind=entity_kind,
                page=page.pagination.current_page,
                page_size=page.pagination.page_size,
                total_items=page.total,
                took_ms=round(took_ms, 2),
                request_id=request_id,
            ),
        )

    def health_check(self):
        return {
            "entity_kinds": sorted(self.kinds),
            "status": "ok"
        }


def default_service() -> ListService:
    service = ListService()
    service.register(EntityKind(
        "product",
        FieldWhitelist(PRODUCT_FIELDS, searchable=PRODUCT_SEARCH_FIELDS),
    ))
    service.register(EntityKind(
        "payment_attribute",
        FieldWhitelist(PAYMENT_ATTRIBUTE_FIELDS, searchable=PAYMENT_ATTRIBUTE_SEARCH_FIELDS),
    ))
    return service
