from functools import cmp_to_key
from typing import Any, List, Optional, Sequence

from listdata.config import SCORE_FIELD
from listdata.exceptions import InvalidFieldError, TypeMismatchError
from listdata.filters import kind_of
from listdata.resolver import FieldResolver, Scalar
from listdata.specs import SortDirection, SortSpec
from listdata.whitelist import FieldWhitelist


def compare_values(a: Scalar, b: Scalar, field: str = "") -> int:
    """
    Order two non-null scalars of the same kind.

    Strings compare case-insensitively first and fall back to the raw value so that
    "apple" and "Apple" still have a fixed relative order.
    """
    if kind_of(a) != kind_of(b):
        raise TypeMismatchError(
            f"Cannot sort field '{field}': mixes {kind_of(a)} and {kind_of(b)} values",
            details={"field": field, "types": sorted({kind_of(a), kind_of(b)})},
        )

    if isinstance(a, str) and isinstance(b, str):
        fa, fb = a.casefold(), b.casefold()
        if fa != fb:
            return -1 if fa < fb else 1

    if a == b:
        return 0
    return -1 if a < b else 1  # type: ignore


def compare_keys(a_keys: Sequence[Scalar], b_keys: Sequence[Scalar], spec: SortSpec) -> int:
    for a, b, key in zip(a_keys, b_keys, spec.keys):
        # nulls last in both directions
        if a is None and b is None:
            continue
        if a is None:
            return 1
        if b is None:
            return -1

        result = compare_values(a, b, key.field)
        if key.direction == SortDirection.DESC:
            result = -result
        if result:
            return result
    return 0


class SortComparator:
    def __init__(self, whitelist: FieldWhitelist, resolver: FieldResolver):
        self.whitelist = whitelist
        self.resolver = resolver

    def validate(self, spec: Optional[SortSpec], search_active: bool = False):
        if spec is None:
            return
        for key in spec.keys:
            if key.field == SCORE_FIELD:
                if not search_active:
                    raise InvalidFieldError(
                        key.field,
                        f"'{SCORE_FIELD}' can only be sorted on during an active search",
                        details={"field": key.field, "stage": "sort"},
                    )
                continue
            self.whitelist.require(key.field, stage="sort")

    def _sort_keys(self, record: Any, spec: SortSpec, score: Optional[float]) -> List[Scalar]:
        return [
            score if key.field == SCORE_FIELD else self.resolver.resolve(record, key.field)
            for key in spec.keys
        ]

    def compare(
        self,
        record_a: Any,
        record_b: Any,
        spec: SortSpec,
        score_a: Optional[float] = None,
        score_b: Optional[float] = None,
    ) -> int:
        """`_score` keys compare the supplied scores; without them a `_score` key is rejected."""
        if any(key.field == SCORE_FIELD for key in spec.keys) and (score_a is None or score_b is None):
            raise InvalidFieldError(
                SCORE_FIELD,
                f"Comparing on '{SCORE_FIELD}' needs a score for both records",
                details={"field": SCORE_FIELD, "stage": "sort"},
            )
        return compare_keys(
            self._sort_keys(record_a, spec, score_a),
            self._sort_keys(record_b, spec, score_b),
            spec,
        )

    def order(
        self,
        records: Sequence[Any],
        spec: Optional[SortSpec],
        scores: Optional[Sequence[float]] = None,
    ) -> List[int]:
        """
        Return the positions of `records` in sorted order.

        Keys are resolved once per record; equal records keep their input order.
        """
        positions = list(range(len(records)))
        if spec is None or not spec.keys:
            return positions

        keys = [
            self._sort_keys(record, spec, scores[i] if scores is not None else None)
            for i, record in enumerate(records)
        ]
        return sorted(positions, key=cmp_to_key(lambda i, j: compare_keys(keys[i], keys[j], spec)))

    def sort(self, records: Sequence[Any], spec: Optional[SortSpec]) -> List[Any]:
        self.validate(spec)
        return [records[i] for i in self.order(records, spec)]
