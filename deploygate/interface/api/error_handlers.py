"""Map gate errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from deploygate.domain.errors import (
    GateAlreadySettledError,
    GateError,
    GateInFlightError,
    GateNotFoundError,
    GateNotSubmittedError,
    GatePermissionError,
    GateStateUnavailableError,
    InvalidParameterValueError,
    UnknownParameterError,
)

logger = logging.getLogger(__name__)


# Most specific class first; looked up along the exception's MRO
ERROR_STATUS: dict[type[GateError], tuple[int, str]] = {
    GatePermissionError: (status.HTTP_403_FORBIDDEN, "PERMISSION_DENIED"),
    GateAlreadySettledError: (status.HTTP_409_CONFLICT, "ALREADY_SETTLED"),
    GateInFlightError: (status.HTTP_423_LOCKED, "DEPLOY_IN_FLIGHT"),
    GateNotSubmittedError: (status.HTTP_409_CONFLICT, "NOT_SUBMITTED"),
    UnknownParameterError: (status.HTTP_400_BAD_REQUEST, "UNKNOWN_PARAMETER"),
    InvalidParameterValueError: (status.HTTP_400_BAD_REQUEST, "INVALID_PARAMETER"),
    GateNotFoundError: (status.HTTP_404_NOT_FOUND, "GATE_NOT_FOUND"),
    GateStateUnavailableError: (status.HTTP_503_SERVICE_UNAVAILABLE, "STATE_UNAVAILABLE"),
}


def status_for(exc: GateError) -> tuple[int, str]:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST, "GATE_ERROR"


async def gate_error_handler(request: Request, exc: GateError) -> JSONResponse:
    status_code, error_code = status_for(exc)
    logger.info(f"{request.method} {request.url.path} -> {status_code} {error_code}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": {"error_code": error_code, "message": str(exc)}},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GateError, gate_error_handler)
