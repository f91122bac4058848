import base64
import hashlib
import json
import math
from typing import Any, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from listdata.config import MAX_PAGE_SIZE
from listdata.exceptions import InvalidCursorError, InvalidPaginationError
from listdata.specs import CursorPagination, OffsetPagination, PaginationMetadata

CURSOR_VERSION = 1


def query_fingerprint(*specs: Optional[BaseModel]) -> str:
    """Stable digest of the specs that decide the ordered sequence a cursor points into."""
    payload = json.dumps(
        [spec.model_dump(mode="json") if spec is not None else None for spec in specs],
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def encode_cursor(offset: int, fingerprint: str) -> str:
    raw = json.dumps({"v": CURSOR_VERSION, "o": offset, "fp": fingerprint}, separators=(",", ":"))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(token: str, fingerprint: str) -> int:
    """Return the resume offset stored in `token`, rejecting malformed or foreign cursors."""
    try:
        padded = token + "=" * (-len(token) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except ValueError as e:
        raise InvalidCursorError("Cursor could not be decoded", details={"cursor": token}) from e

    if not isinstance(data, dict) or data.get("v") != CURSOR_VERSION:
        raise InvalidCursorError("Unsupported cursor format", details={"cursor": token})

    offset = data.get("o")
    if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        raise InvalidCursorError("Cursor holds no valid position", details={"cursor": token})

    if data.get("fp") != fingerprint:
        raise InvalidCursorError(
            "Cursor was issued for a different filter, sort or search",
            details={"cursor": token},
        )

    return offset


class Paginator:
    def __init__(self, max_page_size: int = MAX_PAGE_SIZE):
        self.max_page_size = max_page_size

    def normalize(self, spec: Union[OffsetPagination, CursorPagination, None]):
        """Validate the request and clamp its page size to the configured maximum."""
        if spec is None:
            spec = OffsetPagination()

        if spec.page_size < 0:
            raise InvalidPaginationError(
                "page_size must not be negative", details={"page_size": spec.page_size}
            )
        if isinstance(spec, OffsetPagination) and spec.page < 1:
            raise InvalidPaginationError("page must be >= 1", details={"page": spec.page})

        if spec.page_size > self.max_page_size:
            spec = spec.model_copy(update={"page_size": self.max_page_size})
        return spec

    def start_offset(self, spec: Union[OffsetPagination, CursorPagination], fingerprint: str = "") -> int:
        if isinstance(spec, OffsetPagination):
            return (spec.page - 1) * spec.page_size
        if spec.cursor is None:
            return 0
        return decode_cursor(spec.cursor, fingerprint)

    def paginate(
        self,
        ordered: Sequence[Any],
        spec: Union[OffsetPagination, CursorPagination, None],
        total: Optional[int] = None,
        fingerprint: str = "",
    ) -> Tuple[List[Any], PaginationMetadata]:
        spec = self.normalize(spec)
        total = len(ordered) if total is None else total
        size = spec.page_size
        total_pages = math.ceil(total / size) if size > 0 else 0
        start = self.start_offset(spec, fingerprint)

        if isinstance(spec, OffsetPagination):
            items = list(ordered[start:start + size]) if size > 0 else []
            return items, PaginationMetadata(
                mode="offset",
                total_items=total,
                total_pages=total_pages,
                page_size=size,
                current_page=spec.page,
                has_next=spec.page < total_pages,
                has_previous=spec.page > 1,
            )

        if start > total:
            raise InvalidCursorError(
                "Cursor points past the end of the result set",
                details={"cursor": spec.cursor, "total": total},
            )

        if size == 0:
            return [], PaginationMetadata(
                mode="cursor",
                total_items=total,
                total_pages=0,
                page_size=0,
            )

        end = min(start + size, total)
        has_next = end < total
        has_previous = start > 0
        return list(ordered[start:end]), PaginationMetadata(
            mode="cursor",
            total_items=total,
            total_pages=total_pages,
            page_size=size,
            current_page=start // size + 1,
            next_cursor=encode_cursor(end, fingerprint) if has_next else None,
            previous_cursor=encode_cursor(max(0, start - size), fingerprint) if has_previous else None,
            has_next=has_next,
            has_previous=has_previous,
        )
