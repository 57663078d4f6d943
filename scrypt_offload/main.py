"""FastAPI application entry point.

The app is built on demand, so importing this module never reads the
environment. Serve it with ``uvicorn --factory scrypt_offload.main:create_app``
or through the ``scrypt-offload-server`` command.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from starlette.exceptions import HTTPException as StarletteHTTPException

from scrypt_offload.application.exceptions import ApplicationError
from scrypt_offload.application.services.derivation_service import DerivationService
from scrypt_offload.domain.exceptions import DomainException
from scrypt_offload.domain.services.key_derivation import IKeyDerivation
from scrypt_offload.infrastructure.config.settings import Settings, get_settings
from scrypt_offload.infrastructure.security.scrypt_key_derivation import ScryptKeyDerivation
from scrypt_offload.infrastructure.workers.work_dispatcher import WorkDispatcher
from scrypt_offload.presentation.api import scrypt
from scrypt_offload.presentation.error_schemas import ErrorResponse
from scrypt_offload.presentation.exception_handlers import (
    application_error_handler,
    domain_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    validation_error_handler,
)

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    key_derivation: IKeyDerivation | None = None,
) -> FastAPI:
    """
    Build the hashing service application.

    The worker pool is created when the app starts and drained when it stops,
    so importing or building an app starts no threads.

    Args:
        settings: Service settings, the cached environment settings if omitted
        key_derivation: scrypt primitive, ScryptKeyDerivation if omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    derivation_service = DerivationService(key_derivation or ScryptKeyDerivation())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        dispatcher = WorkDispatcher(
            min_workers=settings.min_workers,
            max_workers=settings.max_workers,
            idle_timeout=settings.idle_timeout,
        )
        app.state.work_dispatcher = dispatcher
        logger.info(
            "Worker pool ready (min=%d, max=%d)", settings.min_workers, settings.max_workers
        )
        try:
            yield
        finally:
            # Running derivations finish and queued ones still run; the wait is off the loop
            await asyncio.to_thread(dispatcher.shutdown, wait=True)
            logger.info("Worker pool stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Offloads scrypt hashing and verification to a bounded worker pool",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        # Interactive docs only in debug mode; otherwise every other route is 404
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.derivation_service = derivation_service

    # Register exception handlers
    # - ApplicationError handles ALL application layer exceptions (NoWorkersAvailableError, etc.)
    # - DomainException handles ALL domain layer exceptions
    # - RequestValidationError handles malformed request bodies
    # - StarletteHTTPException handles unknown routes and wrong methods
    # - Exception handles everything else
    app.add_exception_handler(ApplicationError, application_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DomainException, domain_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(scrypt.router)

    app.openapi = lambda: custom_openapi(app)  # type: ignore[method-assign]
    return app


def custom_openapi(app: FastAPI) -> dict:
    """
    Customize OpenAPI schema to use our error format.

    Malformed requests are answered with 400 and an ErrorResponse, never
    with FastAPI's default 422 HTTPValidationError, so the generated schema
    is rewritten to match.
    """
    # Return cached schema if it exists
    if app.openapi_schema:
        return app.openapi_schema

    # Generate the base OpenAPI schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    schemas = openapi_schema.setdefault("components", {}).setdefault("schemas", {})

    # Remove the default validation error schemas
    schemas.pop("HTTPValidationError", None)
    schemas.pop("ValidationError", None)
    schemas["ErrorResponse"] = ErrorResponse.model_json_schema()

    # Drop every 422 response; malformed input is reported as 400
    for path_data in openapi_schema.get("paths", {}).values():
        for operation in path_data.values():
            if isinstance(operation, dict) and "responses" in operation:
                operation["responses"].pop("422", None)
                operation["responses"]["400"] = {
                    "description": "Malformed request",
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/ErrorResponse"}
                        }
                    },
                }

    # Cache the schema
    app.openapi_schema = openapi_schema
    return app.openapi_schema

