"""idemcache custom exceptions."""


class IdemcacheError(Exception):
    """Base exception for idemcache runtime errors."""


class ConfigurationError(IdemcacheError, ValueError):
    """Raised when a cache or config file is given an invalid setting."""

    def __init__(self, message: str, file_path: str | None = None):
        self.file_path = file_path
        if file_path:
            message = f"{file_path}: {message}"
        super().__init__(message)


class OperationInProgressError(IdemcacheError):
    """Raised when a duplicate call finds its operation still in flight."""

    def __init__(self, token: object):
        self.token = token
        super().__init__(f"Operation for idempotency key {token!r} is already in progress")
