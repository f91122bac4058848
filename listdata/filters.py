from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Optional

import regex

from listdata.exceptions import TypeMismatchError
from listdata.resolver import FieldResolver, Scalar, to_scalar
from listdata.specs import (
    MEMBERSHIP_OPERATORS,
    ORDERING_OPERATORS,
    STRING_OPERATORS,
    FilterOperator,
    FilterSpec,
    Predicate,
)
from listdata.whitelist import FieldWhitelist

TRUE_STRINGS = {"true", "1", "yes"}
FALSE_STRINGS = {"false", "0", "no"}


def kind_of(value: Scalar) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, datetime):
        return "timestamp"
    if isinstance(value, str):
        return "string"
    return "null"


def _mismatch(predicate: Predicate, value: Scalar, operand: Any = None) -> TypeMismatchError:
    return TypeMismatchError(
        f"Operator '{predicate.operator.value}' cannot compare field '{predicate.field}' "
        f"({kind_of(value)}) with {type(operand).__name__}",
        details={
            "field": predicate.field,
            "operator": predicate.operator.value,
            "field_type": kind_of(value),
            "operand_type": type(operand).__name__,
        },
    )


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """ISO-8601 strings, dates, datetimes and epoch milliseconds to an aware datetime."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (datetime, date)):
        return to_scalar(raw)  # type: ignore
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
    if isinstance(raw, str):
        try:
            return to_scalar(datetime.fromisoformat(raw.strip()))  # type: ignore
        except ValueError:
            return None
    return None


def coerce_operand(predicate: Predicate, operand: Any, value: Scalar) -> Scalar:
    """Convert a predicate operand to the kind of the resolved record value."""
    kind = kind_of(value)

    if kind == "boolean":
        if isinstance(operand, bool):
            return operand
        if isinstance(operand, str):
            lowered = operand.strip().lower()
            if lowered in TRUE_STRINGS:
                return True
            if lowered in FALSE_STRINGS:
                return False
        if isinstance(operand, int) and operand in (0, 1):
            return bool(operand)
        raise _mismatch(predicate, value, operand)

    if kind == "number":
        if isinstance(operand, bool):
            raise _mismatch(predicate, value, operand)
        if isinstance(operand, (int, float)):
            return operand
        if isinstance(operand, Decimal):
            return float(operand)
        if isinstance(operand, str):
            try:
                return float(operand)
            except ValueError:
                raise _mismatch(predicate, value, operand) from None
        raise _mismatch(predicate, value, operand)

    if kind == "timestamp":
        parsed = parse_timestamp(operand)
        if parsed is None:
            raise _mismatch(predicate, value, operand)
        return parsed

    if isinstance(operand, str):
        return operand
    if isinstance(operand, (int, float, Decimal)) and not isinstance(operand, bool):
        return str(operand)
    raise _mismatch(predicate, value, operand)


def _fold(predicate: Predicate, value: Scalar) -> Scalar:
    if isinstance(value, str) and not predicate.case_sensitive:
        return value.casefold()
    return value


def evaluate(predicate: Predicate, value: Scalar) -> bool:
    """
    Evaluate one predicate against an already-resolved value.

    Null never satisfies a predicate, whatever the operator.
    """
    if value is None:
        return False

    op = predicate.operator

    if op in STRING_OPERATORS:
        if not isinstance(value, str) or not isinstance(predicate.value, str):
            raise _mismatch(predicate, value, predicate.value)
        if op == FilterOperator.MATCHES:
            flags = 0 if predicate.case_sensitive else regex.IGNORECASE
            return regex.search(predicate.value, value, flags=flags) is not None

        text = _fold(predicate, value)
        needle = _fold(predicate, predicate.value)
        if op == FilterOperator.CONTAINS:
            return needle in text
        if op == FilterOperator.STARTS_WITH:
            return text.startswith(needle)
        return text.endswith(needle)

    if op == FilterOperator.BOOLEAN_EQUALS:
        if not isinstance(value, bool):
            raise _mismatch(predicate, value, predicate.value)
        return value == coerce_operand(predicate, predicate.value, value)

    if op in ORDERING_OPERATORS:
        if kind_of(value) not in ("number", "timestamp"):
            raise _mismatch(predicate, value, predicate.value)

        if op == FilterOperator.RANGE:
            if predicate.min is not None:
                low = coerce_operand(predicate, predicate.min, value)
                if value < low or (value == low and not predicate.include_min):  # type: ignore
                    return False
            if predicate.max is not None:
                high = coerce_operand(predicate, predicate.max, value)
                if value > high or (value == high and not predicate.include_max):  # type: ignore
                    return False
            return True

        operand = coerce_operand(predicate, predicate.value, value)
        if op == FilterOperator.GREATER_THAN:
            return value > operand  # type: ignore
        if op == FilterOperator.GREATER_OR_EQUAL:
            return value >= operand  # type: ignore
        if op == FilterOperator.LESS_THAN:
            return value < operand  # type: ignore
        return value <= operand  # type: ignore

    if op in MEMBERSHIP_OPERATORS:
        target = _fold(predicate, value)
        members = {_fold(predicate, coerce_operand(predicate, v, value)) for v in predicate.values}
        found = target in members
        return found if op == FilterOperator.ONE_OF else not found

    operand = coerce_operand(predicate, predicate.value, value)
    equal = _fold(predicate, value) == _fold(predicate, operand)
    return equal if op == FilterOperator.EQUALS else not equal


class FilterEvaluator:
    def __init__(self, whitelist: FieldWhitelist, resolver: FieldResolver):
        self.whitelist = whitelist
        self.resolver = resolver

    def validate(self, spec: Optional[FilterSpec]):
        if spec is None:
            return
        for field in spec.fields:
            self.whitelist.require(field, stage="filter")

    def matches(self, record: Any, spec: Optional[FilterSpec]) -> bool:
        if spec is None or not spec.predicates:
            return True

        for predicate in spec.predicates:
            value = self.resolver.resolve(record, predicate.field)
            if not evaluate(predicate, value):
                return False
        return True

    def apply(self, records: Iterable[Any], spec: Optional[FilterSpec]) -> List[Any]:
        self.validate(spec)
        return [r for r in records if self.matches(r, spec)]
