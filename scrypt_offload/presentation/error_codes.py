"""Error code to HTTP status code mapping.

This module provides a centralized mapping of error codes to HTTP status codes.
When you add a new exception, simply add its error_code to this mapping.

A well-formed request whose hash or compare operation fails is answered with
200 and an ``{"error": ...}`` body: the request itself was fine, and clients
must not treat the failure as an unavailable service. Only conditions that
mean "this server cannot do the work right now" use a non-2xx status, which
clients treat as a transport failure and answer with a local fallback.

Only codes the server can raise are listed. Malformed bodies and unknown
routes are answered by their own handlers, and the client-side transport
and offline errors never reach an HTTP response.
"""

from fastapi import status


# Map error codes to HTTP status codes
ERROR_CODE_TO_HTTP_STATUS = {
    # Parameter validation errors
    "MISSING_OR_TOO_MUCH_DATA": status.HTTP_200_OK,
    "INVALID_COST": status.HTTP_200_OK,
    "INVALID_BLOCK_SIZE": status.HTTP_200_OK,
    "INVALID_PARALLELIZATION": status.HTTP_200_OK,
    "INVALID_SALT_LEN": status.HTTP_200_OK,
    "INVALID_KEY_LEN": status.HTTP_200_OK,

    # Record decoding errors
    "TRUNCATED_RECORD": status.HTTP_200_OK,
    "LENGTH_MISMATCH": status.HTTP_200_OK,
    "UNSUPPORTED_VERSION": status.HTTP_200_OK,
    "INVALID_RECORD_ENCODING": status.HTTP_200_OK,

    # Derivation errors
    "DERIVATION_LENGTH_MISMATCH": status.HTTP_200_OK,
    "DERIVATION_FAILED": status.HTTP_200_OK,
    "DOMAIN_ERROR": status.HTTP_200_OK,

    # Capacity errors
    "NO_WORKERS_AVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_http_status_for_error_code(error_code: str) -> int:
    """
    Get HTTP status code for a given error code.

    Args:
        error_code: The error code from the exception

    Returns:
        HTTP status code (defaults to 400 if not found)
    """
    return ERROR_CODE_TO_HTTP_STATUS.get(
        error_code,
        status.HTTP_400_BAD_REQUEST,  # Default for unknown errors
    )
