"""Application layer exceptions."""


class ApplicationError(Exception):
    """Base application layer exception."""

    def __init__(self, message: str, error_code: str = "APPLICATION_ERROR"):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
        """
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class TransportError(ApplicationError):
    """Raised when the remote hashing service cannot be reached or misbehaves."""

    def __init__(self, message: str = "Remote service unavailable"):
        super().__init__(message, error_code="TRANSPORT_ERROR")


class ServiceOfflineError(ApplicationError):
    """Raised when the remote service is skipped because it is in backoff."""

    def __init__(self, message: str = "Remote service is offline"):
        super().__init__(message, error_code="SERVICE_OFFLINE")


class NoWorkersAvailableError(ApplicationError):
    """Raised when work is submitted to a disabled or shut down dispatcher."""

    def __init__(self, message: str = "No workers available"):
        super().__init__(message, error_code="NO_WORKERS_AVAILABLE")
