"""Error taxonomy shared by the services and the HTTP layer.

Every error carries a stable machine-readable code, a user-safe message and
the HTTP status the boundary maps it to.
"""

from enum import Enum


class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    PAST_EVENT = "PAST_EVENT"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainError(Exception):
    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class EventNotFoundError(NotFoundError):
    def __init__(self, event_id: object) -> None:
        super().__init__("Event not found")
        self.event_id = event_id


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: object) -> None:
        super().__init__("User not found")
        self.user_id = user_id


class RegistrationNotFoundError(NotFoundError):
    def __init__(self, event_id: object, user_id: object) -> None:
        super().__init__("Registration not found")
        self.event_id = event_id
        self.user_id = user_id


class PastEventError(DomainError):
    code = ErrorCode.PAST_EVENT
    status_code = 422


class AlreadyRegisteredError(DomainError):
    code = ErrorCode.ALREADY_REGISTERED
    status_code = 409

    def __init__(self, message: str = "User is already registered for this event") -> None:
        super().__init__(message)


class CapacityExceededError(DomainError):
    code = ErrorCode.CAPACITY_EXCEEDED
    status_code = 422

    def __init__(self, current: int, capacity: int) -> None:
        super().__init__(f"Event is at full capacity ({current}/{capacity})")
        self.current = current
        self.capacity = capacity


class EmailTakenError(DomainError):
    code = ErrorCode.CONFLICT
    status_code = 409

    def __init__(self) -> None:
        super().__init__("A user with this email already exists")


class ValidationFailedError(DomainError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class StorageUnavailableError(DomainError):
    """Transport or transaction failure. The message never carries driver details."""

    code = ErrorCode.DATABASE_ERROR
    status_code = 500

    def __init__(self, message: str = "The database is unavailable, please try again.") -> None:
        super().__init__(message)
