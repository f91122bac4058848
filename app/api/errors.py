from app.models.api_response import APIResponse, Meta
from app.models.error import APIError
from listdata.exceptions import ListQueryError

def list_error_response(exc: ListQueryError, meta: Meta | None = None) -> APIResponse:
    return APIResponse(
        status="error",
        meta=meta,
        error=APIError(
            code=exc.code,
            message=exc.message,
            stage=exc.stage,
            details=exc.details
        )
    )
