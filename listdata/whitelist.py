from typing import Iterable, List, Optional

from listdata.exceptions import InvalidFieldError


class FieldWhitelist:
    """Field paths an entity kind allows for filtering, sorting and searching."""

    def __init__(self, fields: Iterable[str], searchable: Optional[Iterable[str]] = None):
        self.fields = frozenset(fields)
        self.searchable = tuple(searchable) if searchable is not None else None

        if self.searchable is not None:
            unknown = [f for f in self.searchable if f not in self.fields]
            if unknown:
                raise ValueError(f"searchable fields not in whitelist: {unknown}")

    def is_queryable(self, field_path: str) -> bool:
        return field_path in self.fields

    def require(self, field_path: str, stage: str):
        if not self.is_queryable(field_path):
            raise InvalidFieldError(field_path, details={"field": field_path, "stage": stage})

    @property
    def default_search_fields(self) -> List[str]:
        if self.searchable is not None:
            return list(self.searchable)
        return sorted(self.fields)
