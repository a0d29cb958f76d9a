"""Global exception handlers for FastAPI."""

import logging

import pydantic
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.errors import (
    ConcurrentModification,
    CRMError,
    InvalidTransition,
    NotFound,
    Unauthorized,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _json(status_code: int, request: Request, code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, request, details).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return _json(
            409, request, ErrorCodes.INVALID_STATUS_TRANSITION, str(exc),
            details={
                "entity_type": exc.entity_type,
                "entity_id": str(exc.entity_id),
                "current": exc.current,
                "target": exc.target,
            },
        )

    @app.exception_handler(ConcurrentModification)
    async def conflict_handler(request: Request, exc: ConcurrentModification):
        return _json(409, request, ErrorCodes.CONFLICT, str(exc))

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized):
        return _json(403, request, ErrorCodes.AUTHORIZATION_DENIED, str(exc))

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return _json(404, request, ErrorCodes.NOT_FOUND, str(exc))

    @app.exception_handler(ValidationError)
    async def domain_validation_handler(request: Request, exc: ValidationError):
        return _json(400, request, ErrorCodes.VALIDATION_ERROR, str(exc))

    @app.exception_handler(CRMError)
    async def crm_error_handler(request: Request, exc: CRMError):
        return _json(400, request, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(pydantic.ValidationError)
    async def payload_validation_handler(request: Request, exc: pydantic.ValidationError):
        return _json(422, request, ErrorCodes.VALIDATION_ERROR, str(exc.errors(include_url=False)))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _json(422, request, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _json(400, request, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json(500, request, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
