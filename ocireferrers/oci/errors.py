"""Errors raised while talking to an OCI registry.

ref: https://github.com/opencontainers/distribution-spec/blob/main/spec.md#error-codes
"""


class OCIError(Exception):
    """Base class for all registry errors."""


class NotFoundError(OCIError):
    """The requested content does not exist at the queried location."""


class AuthenticationError(OCIError):
    """Raised when authentication fails."""


class RegistryError(OCIError):
    """The registry answered with an unexpected status code."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class ContentSizeMismatch(OCIError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"expected {expected} bytes, registry reported {actual}")
        self.expected = expected
        self.actual = actual


class InvalidReferenceError(OCIError, ValueError):
    pass


class InvalidDigestError(OCIError, ValueError):
    pass


class OperationCancelled(OCIError):
    """The caller cancelled the operation before it completed."""


def is_not_found(error: BaseException) -> bool:
    return isinstance(error, NotFoundError)
