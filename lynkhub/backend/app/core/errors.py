"""
LynkHub service errors.

Services raise these typed failures; the API layer turns them into a stable
``{"kind", "message"}`` JSON body with the matching status code. Store
errors that escape a service are reported as ``internal``.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    kind = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InvalidArgument(ServiceError):
    kind = "invalid_argument"
    status_code = 400


class NotFound(ServiceError):
    kind = "not_found"
    status_code = 404


class Conflict(ServiceError):
    kind = "conflict"
    status_code = 409


class Unauthorized(ServiceError):
    kind = "unauthorized"
    status_code = 403


class Internal(ServiceError):
    kind = "internal"
    status_code = 500


def parse_id(value: Any, label: str = "id") -> uuid.UUID:
    """Coerce a path/body identifier to a UUID or fail with InvalidArgument."""
    if isinstance(value, uuid.UUID):
        return value
    if value is None or not str(value).strip():
        raise InvalidArgument(f"{label} is missing")
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise InvalidArgument(f"Invalid {label} format")


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} store failure: {exc}", exc_info=exc)
    error = Internal("The data store failed to complete the request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
