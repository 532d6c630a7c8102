from typing import Any, Optional


class ApplicationError(Exception):
    """Base class for application-specific errors."""

    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred."):
        super().__init__(message)
        self.message = message


class BadRequestError(ApplicationError):
    """Malformed id, missing required field or failed schema validation."""

    status_code = 400


class UnauthorizedError(ApplicationError):
    """Missing or invalid credential on a path that requires one."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(ApplicationError):
    """Authenticated but not permitted, or the account is blocked."""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(ApplicationError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class ConflictError(ApplicationError):
    status_code = 409

    def __init__(self, message: str = "Conflict"):
        super().__init__(message)


class VersionConflictError(ConflictError):
    """Raised when an optimistic-lock check fails. Carries the stored copy."""

    status_code = 409

    def __init__(self, message: str, current: Optional[Any] = None):
        super().__init__(message)
        self.current = current


class PayloadTooLargeError(ApplicationError):
    status_code = 413

    def __init__(self, message: str = "Payload too large"):
        super().__init__(message)


class DatabaseError(ApplicationError):
    """Raised for general database-related errors not specifically handled."""

    def __init__(self, message="A database error occurred.", original_exception=None):
        super().__init__(message)
        self.original_exception = original_exception


class UploadError(ApplicationError):
    """An upload provider rejected or failed a request."""

    status_code = 502


# Store-level signals raised by the collection layer and translated by crud.

class DocumentNotFoundError(ApplicationError):
    status_code = 404


class DocumentExistsError(ApplicationError):
    status_code = 409


class PreconditionFailedError(ApplicationError):
    """Conditional write rejected (etag or predicate mismatch)."""

    status_code = 412
