"""
Domain Exceptions

Typed errors raised by the fulfillment core. Every error carries an
``ErrorType`` discriminator and a stable machine-readable ``code`` so a
transport layer can translate it without inspecting messages.
"""

from enum import Enum
from typing import Any


class ErrorType(str, Enum):
    """Error type enumeration for discriminated unions."""

    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    UNAVAILABLE = "UNAVAILABLE"
    VALIDATION = "VALIDATION"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    TRANSACTION_FAILURE = "TRANSACTION_FAILURE"
    SERVICE_ERROR = "SERVICE_ERROR"

    @property
    def status_code(self) -> int:
        """Suggested transport status code for this error kind."""
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorType.INVALID_REQUEST: 400,
    ErrorType.NOT_FOUND: 404,
    ErrorType.UNAVAILABLE: 409,
    ErrorType.VALIDATION: 422,
    ErrorType.INVALID_TRANSITION: 409,
    ErrorType.RESOURCE_EXHAUSTED: 409,
    ErrorType.TRANSACTION_FAILURE: 503,
    ErrorType.SERVICE_ERROR: 500,
}


class DomainError(Exception):
    """Base class for all domain errors with type discrimination."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code or error_type.value
        self.details = details or {}

    @property
    def status_code(self) -> int:
        return self.error_type.status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "type": self.error_type.value,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidRequestError(DomainError):
    """Raised when a request has the wrong type or state for a handler."""

    def __init__(
        self,
        message: str,
        code: str = "INVALID_REQUEST",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorType.INVALID_REQUEST, code, details)


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity_type: str, entity_id: Any, code: str | None = None) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type.capitalize()} not found: {entity_id}",
            ErrorType.NOT_FOUND,
            code or f"{entity_type.upper().replace(' ', '_')}_NOT_FOUND",
            {"entity_type": entity_type, "entity_id": str(entity_id)},
        )


class SkuNotFoundError(NotFoundError):
    """Raised when no inventory item can fulfil a requested SKU."""

    def __init__(self, sku: str) -> None:
        super().__init__("sku", sku, code="SKU_NOT_FOUND")
        self.message = f"No available inventory matches SKU {sku}"
        self.args = (self.message,)


class UnavailableError(DomainError):
    """Raised when an entity exists but is in the wrong status."""

    def __init__(
        self,
        message: str,
        code: str = "UNAVAILABLE",
        details: dict[str, Any] | None = None,
        error_type: ErrorType = ErrorType.UNAVAILABLE,
    ) -> None:
        super().__init__(message, error_type, code, details)


class ResourceExhaustedError(UnavailableError):
    """Raised when a bin has no capacity left for the requested quantity."""

    def __init__(
        self,
        message: str,
        code: str = "BIN_FULL",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details, ErrorType.RESOURCE_EXHAUSTED)


class ValidationError(DomainError):
    """Raised when a payload value is outside its domain range."""

    def __init__(
        self,
        field_name: str,
        value: Any,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.field_name = field_name
        self.value = value

        details = dict(details or {})
        details.update(
            {
                "field": field_name,
                "value": str(value) if value is not None else None,
            }
        )
        super().__init__(
            f"Validation failed for field '{field_name}': {message}",
            ErrorType.VALIDATION,
            code,
            details,
        )


class SKUFormatError(ValidationError):
    """Raised when a SKU string cannot be parsed into its five components."""

    def __init__(self, value: Any, message: str) -> None:
        super().__init__("sku", value, message, code="INVALID_SKU")


class InvalidTransitionError(DomainError):
    """Raised when a status machine rejects a transition."""

    def __init__(
        self,
        entity_type: str,
        current: str,
        target: str,
        code: str = "INVALID_TRANSITION",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.current = current
        self.target = target
        details = dict(details or {})
        details.update({"entity_type": entity_type, "from": current, "to": target})
        super().__init__(
            f"Cannot transition {entity_type} from {current} to {target}",
            ErrorType.INVALID_TRANSITION,
            code,
            details,
        )


class TransactionFailureError(DomainError):
    """Raised when a transaction keeps failing after every retry attempt."""

    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Transaction failed after {attempts} attempts",
            ErrorType.TRANSACTION_FAILURE,
            "TRANSACTION_FAILURE",
            {"attempts": attempts},
        )


class ServiceError(DomainError):
    """Generic wrapper for unexpected failures; never exposes internals."""

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(message, ErrorType.SERVICE_ERROR, "SERVICE_ERROR")


class ConcurrencyConflictError(Exception):
    """A conditional update matched no rows because another transaction won.

    Transient: the transaction runner retries the whole operation. It is not
    a DomainError and never reaches callers directly.
    """

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"Concurrent modification of {entity_type} {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id
