class ListQueryError(Exception):
    code = "LIST_QUERY_ERROR"
    message = "List query failed"

    def __init__(self, message: str | None = None, details=None):
        self.message = message or self.message
        self.details = details
        self.stage: str | None = None
        super().__init__(self.message)

class InvalidFieldError(ListQueryError):
    code = "INVALID_FIELD"
    message = "Field is not queryable"

    def __init__(self, field: str, message: str | None = None, details=None):
        self.field = field
        details = dict(details or {})
        details.setdefault("field", field)
        super().__init__(message or f"Field '{field}' is not queryable", details)

class TypeMismatchError(ListQueryError):
    code = "TYPE_MISMATCH"
    message = "Operator is not compatible with the field value type"

class InvalidCursorError(ListQueryError):
    code = "INVALID_CURSOR"
    message = "The pagination cursor is invalid or stale"

class InvalidPaginationError(ListQueryError):
    code = "INVALID_PAGINATION"
    message = "The pagination parameters are invalid"

class UnknownEntityKindError(ListQueryError):
    code = "UNKNOWN_ENTITY_KIND"
    message = "No list configuration is registered for this entity kind"
