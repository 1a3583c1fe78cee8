from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from cosmos.core.errors import CosmosError, ErrorKind, error_messages

logger = structlog.get_logger()

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.bad_input: status.HTTP_400_BAD_REQUEST,
    ErrorKind.not_found: status.HTTP_404_NOT_FOUND,
    ErrorKind.conflict: status.HTTP_409_CONFLICT,
    ErrorKind.internal: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def cosmos_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, CosmosError)
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)

    log = logger.error if status_code >= 500 else logger.info
    log(
        "request_failed",
        path=request.url.path,
        status=status_code,
        error_type=type(exc).__name__,
        message=exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message, "details": error_messages(exc)},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CosmosError, cosmos_error_handler)
