"""Typed service failures mapped to HTTP outcomes, applied once at the boundary."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..core.exceptions import (
    IntegrationError,
    InvalidArgumentError,
    PatientNotFoundError,
    PatientServiceError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    PatientNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    IntegrationError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: PatientServiceError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def patient_service_error_handler(request: Request, exc: PatientServiceError) -> JSONResponse:
    code = status_code_for(exc)
    if isinstance(exc, IntegrationError):
        logger.error("%s %s failed on %s: %s", request.method, request.url.path, exc.source, exc)
    elif code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc), "error": type(exc).__name__})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PatientServiceError, patient_service_error_handler)
