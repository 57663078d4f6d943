"""Domain layer exceptions for parameter, record and derivation failures."""


class DomainException(Exception):
    """
    Base exception for domain layer.

    Domain exceptions represent a hash or compare operation that cannot be
    performed with the given input. They are terminal for the current attempt:
    the same input fails the same way on any server, so callers must not
    retry them against another endpoint.

    Examples:
        - Parameters outside the bounds of the current record format
        - Records that are truncated or carry an unknown version byte
        - A key-derivation primitive that failed or misbehaved
    """

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR"):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
        """
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class MissingOrTooMuchDataError(DomainException):
    """Raised when the input text is empty or longer than allowed."""

    def __init__(self, message: str = "Missing, invalid or too much data"):
        super().__init__(message, error_code="MISSING_OR_TOO_MUCH_DATA")


class InvalidCostError(DomainException):
    """Raised when cost is out of range or not a power of two."""

    def __init__(self, message: str = "Invalid cost parameter"):
        super().__init__(message, error_code="INVALID_COST")


class InvalidBlockSizeError(DomainException):
    """Raised when blockSize is out of range."""

    def __init__(self, message: str = "Invalid blockSize parameter"):
        super().__init__(message, error_code="INVALID_BLOCK_SIZE")


class InvalidParallelizationError(DomainException):
    """Raised when parallelization is out of range."""

    def __init__(self, message: str = "Invalid parallelization parameter"):
        super().__init__(message, error_code="INVALID_PARALLELIZATION")


class InvalidSaltLenError(DomainException):
    """Raised when saltLen is out of range."""

    def __init__(self, message: str = "Invalid saltLen parameter"):
        super().__init__(message, error_code="INVALID_SALT_LEN")


class InvalidKeyLenError(DomainException):
    """Raised when keyLen is out of range."""

    def __init__(self, message: str = "Invalid keyLen parameter"):
        super().__init__(message, error_code="INVALID_KEY_LEN")


class TruncatedRecordError(DomainException):
    """Raised when a record is shorter than its header."""

    def __init__(self, message: str = "Hash record is truncated"):
        super().__init__(message, error_code="TRUNCATED_RECORD")


class LengthMismatchError(DomainException):
    """Raised when declared salt and key lengths do not match the record size."""

    def __init__(self, message: str = "Invalid hash buffer length"):
        super().__init__(message, error_code="LENGTH_MISMATCH")


class UnsupportedVersionError(DomainException):
    """Raised when a record carries an unknown version byte."""

    def __init__(self, message: str = "Unsupported hash record version"):
        super().__init__(message, error_code="UNSUPPORTED_VERSION")


class InvalidRecordEncodingError(DomainException):
    """Raised when the text form of a record is not valid base64."""

    def __init__(self, message: str = "Hash is not valid base64"):
        super().__init__(message, error_code="INVALID_RECORD_ENCODING")


class DerivationLengthMismatchError(DomainException):
    """Raised when the key-derivation primitive returns a key of the wrong size."""

    def __init__(self, message: str = "Derived key length does not match keyLen"):
        super().__init__(message, error_code="DERIVATION_LENGTH_MISMATCH")


class DerivationFailedError(DomainException):
    """Raised when the key-derivation primitive fails."""

    def __init__(self, message: str = "Derivation failed"):
        super().__init__(message, error_code="DERIVATION_FAILED")
