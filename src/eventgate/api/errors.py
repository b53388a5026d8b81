"""Exception handlers mapping engine errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from eventgate.engine.errors import (
    EventGateError,
    InvalidState,
    NotFound,
    PreconditionFailed,
    Unauthenticated,
    Unauthorized,
    ValidationFailed,
)

logger = logging.getLogger("eventgate.api")

# Checked in order; subclasses of NotFound resolve through isinstance
ERROR_STATUS_CODES: tuple[tuple[type[EventGateError], int], ...] = (
    (Unauthenticated, 401),
    (Unauthorized, 403),
    (NotFound, 404),
    (InvalidState, 409),
    (PreconditionFailed, 412),
    (ValidationFailed, 422),
)


def status_code_for(exc: EventGateError) -> int:
    for kind, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, kind):
            return status_code
    return 400


async def handle_eventgate_error(request: Request, exc: EventGateError) -> JSONResponse:
    """Render an engine error as {code, message, fields?}."""
    status_code = status_code_for(exc)
    content: dict = {"code": exc.code, "message": exc.message}
    if isinstance(exc, ValidationFailed):
        content["fields"] = exc.fields

    logger.info(
        "%s %s -> %s %s: %s",
        request.method,
        request.url.path,
        status_code,
        exc.code,
        exc.message,
    )
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EventGateError, handle_eventgate_error)
