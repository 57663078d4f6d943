"""FastAPI dependency injection setup.

This module is where route handlers obtain their collaborators.

The collaborators themselves (worker pool, derivation service) are
created by the application factory and stored on ``app.state``: each app
instance owns its own pool, so two apps in one process (e.g. in tests) never
share workers or configuration.

In tests, any provider can be replaced:

    app.dependency_overrides[get_derivation_service] = lambda: DerivationService(FakeKeyDerivation())
"""

from fastapi import Request

from scrypt_offload.application.services.derivation_service import DerivationService
from scrypt_offload.infrastructure.workers.work_dispatcher import WorkDispatcher


def get_work_dispatcher(request: Request) -> WorkDispatcher:
    """
    Dependency that provides the worker pool.

    The pool is created when the application starts (lifespan) and shut
    down, after draining, when it stops.

    Returns:
        WorkDispatcher owned by this app instance
    """
    return request.app.state.work_dispatcher


def get_derivation_service(request: Request) -> DerivationService:
    """
    Dependency that provides the derivation service.

    This is a SINGLETON per app - the service is stateless and thread-safe,
    so every worker thread shares it.

    Returns:
        DerivationService instance
    """
    return request.app.state.derivation_service
