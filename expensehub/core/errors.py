"""Domain exceptions and JSON error handlers.

Every error response shares one envelope: ``{"error": <code>, "detail": <message>}``.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette import status
import logging

logger = logging.getLogger("expensehub.errors")

_STATUS_CODES = {
    400: "bad_request",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    413: "payload_too_large",
    502: "upstream_error",
}


class ReportNotFoundError(LookupError):
    def __init__(self, report_id: str):
        super().__init__(f"report '{report_id}' not found")
        self.report_id = report_id


class ExportError(RuntimeError):
    """Raised when the export document itself cannot be produced."""


def http_error_handler(request: Request, exc):  # type: ignore
    detail = getattr(exc, "detail", None)
    if exc.status_code == status.HTTP_404_NOT_FOUND and detail in (None, "Not Found"):
        detail = f"No route for {request.method} {request.url.path}"
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": _STATUS_CODES.get(exc.status_code, "http_error"),
            "detail": detail,
        },
        headers=getattr(exc, "headers", None),
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def report_not_found_handler(request: Request, exc: ReportNotFoundError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "not_found", "detail": str(exc)},
    )


def export_error_handler(request: Request, exc: ExportError):  # type: ignore
    logger.error("export failed: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "export_failed", "detail": str(exc)},
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
