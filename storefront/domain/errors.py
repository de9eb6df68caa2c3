# storefront/domain/errors.py
from dataclasses import dataclass, asdict
from typing import Any, List


@dataclass
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


class AppError(Exception):
    """Base class for every classified error the service raises.

    Handlers in the API layer turn these into the standard error envelope,
    anything else is treated as an internal error.
    """

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(AppError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ValidationFailed(AppError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str | None = None, details: List[FieldError] | None = None):
        details = details or []
        if message is None:
            message = details[0].message if details else "Validation failed"
        super().__init__(message, details)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        return cls(message, [FieldError(field, message)])


class InsufficientStock(ValidationFailed):
    def __init__(self, product_id: int, product_name: str, requested: int, available: int):
        message = (
            f'Insufficient inventory for product "{product_name}". '
            f"Available: {available}, Required: {requested}"
        )
        super().__init__(message, [FieldError("quantity", message)])
        self.product_id = product_id
        self.requested = requested
        self.available = available


class Unauthorized(AppError):
    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class Forbidden(AppError):
    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


class Conflict(AppError):
    code = "RESOURCE_EXISTS"
    status_code = 409


class BusinessRuleViolation(AppError):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422


class InternalError(AppError):
    code = "INTERNAL_SERVER_ERROR"
    status_code = 500


class DatabaseError(InternalError):
    code = "DATABASE_ERROR"

    def __init__(self, message: str, table: str | None = None, constraint: str | None = None,
                 operation: str | None = None):
        super().__init__(message)
        self.table = table
        self.constraint = constraint
        self.operation = operation
