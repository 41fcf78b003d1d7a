from fastapi import HTTPException, status

from cafeboard.core.errors import (
    AggregationAborted,
    UpstreamError,
    UpstreamNotFound,
    UpstreamUnavailable,
)
from cafeboard.core.logger import get_logger

logger = get_logger("api.errors")


def to_http_error(error: Exception, route: str) -> HTTPException:
    """Translate a service failure into the response the dashboard sees."""
    if isinstance(error, UpstreamNotFound):
        code, detail = status.HTTP_404_NOT_FOUND, error.message
    elif isinstance(error, UpstreamUnavailable):
        code, detail = status.HTTP_503_SERVICE_UNAVAILABLE, "iCafeCloud is unavailable"
    elif isinstance(error, (UpstreamError, AggregationAborted)):
        code, detail = status.HTTP_502_BAD_GATEWAY, "Bad response from iCafeCloud"
    else:
        code, detail = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"

    log = logger.warning if code == status.HTTP_404_NOT_FOUND else logger.error
    log(
        "request_failed",
        extra={
            "route": route,
            "status": code,
            "error": str(error),
            "error_type": type(error).__name__,
        },
    )
    return HTTPException(status_code=code, detail=detail)
