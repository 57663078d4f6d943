"""Exception handlers for converting exceptions to HTTP responses.

This module provides a scalable approach to exception handling.
Instead of creating individual handlers for each exception, we use
base exception handlers that automatically determine the HTTP status
code based on the error_code attribute.

Every response body has the same shape, ``{"error": "<message>"}``, so
clients need a single parser for all failures.

To add a new exception:
1. Create the exception class (inheriting from ApplicationError or DomainException)
2. Add its error_code to ERROR_CODE_TO_HTTP_STATUS in error_codes.py
3. That's it! No need to create or register a new handler.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from scrypt_offload.application.dtos.scrypt_dto import describe_request_errors
from scrypt_offload.application.exceptions import ApplicationError
from scrypt_offload.domain.exceptions import DomainException
from scrypt_offload.presentation.error_codes import get_http_status_for_error_code

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Not found"


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def application_error_handler(
    request: Request, exc: ApplicationError
) -> JSONResponse:
    """
    Handle ALL application layer exceptions.

    This single handler handles all ApplicationError subclasses.
    The HTTP status code is determined by the error_code attribute
    using the ERROR_CODE_TO_HTTP_STATUS mapping.
    """
    http_status = get_http_status_for_error_code(exc.error_code)
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)

    return _error_response(http_status, exc.message)


async def domain_exception_handler(
    request: Request, exc: DomainException
) -> JSONResponse:
    """
    Handle ALL domain layer exceptions.

    Domain exceptions mean the request was well-formed but the operation
    failed (bad parameters, undecodable record, derivation failure). They are
    reported with 200 and an error body.
    """
    http_status = get_http_status_for_error_code(exc.error_code)
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)

    return _error_response(http_status, exc.message)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors from request data.

    Any request whose shape does not match the schema is rejected with 400
    before a single field is used.
    """
    errors = exc.errors()
    message = describe_request_errors(list(errors))
    logger.error(
        "Error while processing %s request: %s",
        request.url.path,
        "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in errors
        ),
    )

    return _error_response(status.HTTP_400_BAD_REQUEST, message)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """
    Handle routing errors raised by Starlette.

    Unknown routes and known routes called with the wrong method are both
    answered with 404, so the service exposes nothing but its two POST
    endpoints.
    """
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        logger.error("404 Not found: %s %s", request.method, request.url)
        return _error_response(status.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)

    return _error_response(exc.status_code, str(exc.detail))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all other unhandled exceptions.

    This is the catch-all handler for any unexpected errors.
    """
    # Log the actual error for debugging
    logger.error(f"Unhandled error: {exc}", exc_info=True)

    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
