import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from listdata.exceptions import TypeMismatchError

Scalar = str | int | float | bool | datetime | None


@runtime_checkable
class FieldResolver(Protocol):
    def resolve(self, record: Any, field_path: str) -> Scalar: ...


def to_scalar(value: Any, field_path: str = "") -> Scalar:
    """
    Coerce a raw attribute value into one of the comparable scalar kinds.

    Naive datetimes are taken as UTC so that every timestamp can be ordered against every
    other. Lists of scalars are flattened into one space-joined string.
    """
    if value is None:
        return None

    if isinstance(value, Enum):
        value = value.value

    if isinstance(value, Decimal):
        value = float(value)

    if isinstance(value, float) and math.isnan(value):
        return None

    if isinstance(value, (bool, str, int, float)):
        return value

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, (list, tuple)):
        parts = [to_scalar(v, field_path) for v in value]
        return " ".join(str(p) for p in parts if p is not None)

    raise TypeMismatchError(
        f"Field '{field_path}' does not resolve to a scalar value",
        details={"field": field_path, "type": type(value).__name__},
    )


def _lookup(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


class RecordResolver:
    """
    Resolves dotted field paths against mapping or attribute records.

    A segment the record does not carry resolves to None, as does every segment after an
    absent relation. Whether a field may be queried at all is the whitelist's decision.
    """

    def resolve(self, record: Any, field_path: str) -> Scalar:
        value = record
        for part in field_path.split("."):
            if value is None:
                return None
            value = _lookup(value, part)

        return to_scalar(value, field_path)
