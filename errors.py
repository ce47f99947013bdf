from enum import Enum


class ErrorKind(str, Enum):
    """Stable discriminant for every failure the service reports."""

    VALIDATION = "validation_error"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    OWNER_NOT_FOUND = "owner_not_found"
    TASK_NOT_FOUND = "task_not_found"


class TaskAppError(Exception):
    """
    Base class for failures the RPC layer turns into an error response.

    Subclasses fix `kind`, `status_code` and a default message. Callers
    (and tests) should branch on `kind`; the message is for humans.
    """

    kind: ErrorKind
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class ValidationError(TaskAppError):
    kind = ErrorKind.VALIDATION
    status_code = 400
    default_message = "Invalid input"

    def __init__(self, fields: dict | None = None, message: str | None = None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["fields"] = self.fields
        return data


class DuplicateEmail(TaskAppError):
    kind = ErrorKind.DUPLICATE_EMAIL
    status_code = 409
    default_message = "Email already registered"


class InvalidCredentials(TaskAppError):
    # Same message for unknown email and wrong password.
    kind = ErrorKind.INVALID_CREDENTIALS
    status_code = 401
    default_message = "Invalid email or password"


class OwnerNotFound(TaskAppError):
    kind = ErrorKind.OWNER_NOT_FOUND
    status_code = 404
    default_message = "User not found"


class TaskNotFound(TaskAppError):
    # Covers both "no such task" and "task belongs to someone else".
    kind = ErrorKind.TASK_NOT_FOUND
    status_code = 404
    default_message = "Task not found or access denied"
