"""
Error taxonomy shared by the translator, the store and the service layer.

Every failure crosses component boundaries as a ``ResourceError`` subclass and
is rendered by the handlers installed in ``install_error_handlers``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ResourceError(Exception):
    code = "RESOURCE_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(ResourceError):
    """Malformed or missing query/body parameter."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(ResourceError):
    code = "NOT_FOUND"
    status_code = 404


class OptimisticMismatchError(ResourceError):
    """The stored record no longer matches the caller's previous snapshot."""

    code = "OPTIMISTIC_MISMATCH"
    status_code = 409


class StoreError(ResourceError):
    code = "STORE_ERROR"
    status_code = 500


class IntegrityViolationError(StoreError):
    code = "INTEGRITY_VIOLATION"
    status_code = 400


class StoreTimeoutError(StoreError):
    code = "STORE_TIMEOUT"
    status_code = 504


class OperationNotImplementedError(ResourceError):
    code = "NOT_IMPLEMENTED"
    status_code = 501

    def __init__(self, operation: str):
        super().__init__("not implemented", details={"operation": operation})


async def resource_error_handler(request: Request, exc: ResourceError) -> JSONResponse:
    if isinstance(exc, StoreError) and not isinstance(exc, IntegrityViolationError):
        logger.error(
            "store failure on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        errors.append({"field": location, "message": item.get("msg", "")})
    body = ValidationError("Некорректные параметры запроса", details={"errors": errors}).to_dict()
    return JSONResponse(status_code=ValidationError.status_code, content=body)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ResourceError, resource_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
