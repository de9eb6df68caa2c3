# storefront/utils/db_errors.py
"""
Translation of driver-level database errors into the service error taxonomy.

Postgres errors are recognised by SQLSTATE (psycopg2 `pgcode`, psycopg 3
`sqlstate`) and constraint name, SQLite errors by their message text. Errors
that are already classified pass through `db_errors` untouched.
"""
import functools
from typing import Callable, Optional, Tuple

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from storefront.domain.errors import (
    AppError,
    Conflict,
    DatabaseError,
    InternalError,
    ValidationFailed,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"
CHECK_VIOLATION = "23514"
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
CONNECTION_CODES = {"08000", "08003", "08006", "53300"}

_SQLITE_MARKERS = (
    ("UNIQUE constraint failed", UNIQUE_VIOLATION),
    ("FOREIGN KEY constraint failed", FOREIGN_KEY_VIOLATION),
    ("NOT NULL constraint failed", NOT_NULL_VIOLATION),
    ("CHECK constraint failed", CHECK_VIOLATION),
)

# (substring of constraint / message, user facing message), first match wins
_UNIQUE_MESSAGES = (
    ("order_number", "Order number already exists"),
    ("users.email", "User with this email already exists"),
    ("users_email", "User with this email already exists"),
    ("categories.name", "Category with this name already exists"),
    ("categories_name", "Category with this name already exists"),
    ("categories.slug", "Category with this slug already exists"),
    ("categories_slug", "Category with this slug already exists"),
    ("products.slug", "Product with this slug already exists"),
    ("products_slug", "Product with this slug already exists"),
    ("u_cart_product", "Product is already in the cart"),
    ("cart_items.cart_id", "Product is already in the cart"),
    ("carts.user_id", "Cart already exists for this user"),
    ("carts_user_id", "Cart already exists for this user"),
)


def error_code(exc: BaseException) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None

    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code

    text = str(orig)
    for marker, mapped in _SQLITE_MARKERS:
        if marker in text:
            return mapped
    return None


def _constraint_text(exc: BaseException) -> str:
    orig = getattr(exc, "orig", None)
    if orig is None:
        return str(exc)

    diag = getattr(orig, "diag", None)
    parts = [str(orig)]
    for attr in ("constraint_name", "table_name", "column_name"):
        value = getattr(diag, attr, None) if diag is not None else None
        if value:
            parts.append(value)
    return " ".join(parts)


def is_unique_violation(exc: BaseException, hint: str | None = None) -> bool:
    if not isinstance(exc, IntegrityError) or error_code(exc) != UNIQUE_VIOLATION:
        return False
    return hint is None or hint in _constraint_text(exc)


def _unique_message(text: str) -> str:
    for needle, message in _UNIQUE_MESSAGES:
        if needle in text:
            return message
    return "This record already exists"


def _describe(exc: BaseException) -> Tuple[Optional[str], Optional[str]]:
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    table = getattr(diag, "table_name", None) if diag is not None else None
    constraint = getattr(diag, "constraint_name", None) if diag is not None else None
    return table, constraint


def translate_db_error(exc: SQLAlchemyError, operation: str = "unknown", resource: str | None = None) -> AppError:
    code = error_code(exc)
    text = _constraint_text(exc)
    table, constraint = _describe(exc)

    logger.error(
        f"Database error during {operation} of {resource or 'record'}: "
        f"code={code} table={table} constraint={constraint} detail={exc}"
    )

    if code == UNIQUE_VIOLATION:
        return Conflict(_unique_message(text))
    if code == FOREIGN_KEY_VIOLATION:
        return ValidationFailed("Referenced record does not exist")
    if code == NOT_NULL_VIOLATION:
        return ValidationFailed("Required field is missing")
    if code == CHECK_VIOLATION:
        if "inventory_non_negative" in text:
            return ValidationFailed("Insufficient inventory")
        return ValidationFailed("Invalid data provided")
    if code in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED):
        return InternalError("Please retry your request")
    if code in CONNECTION_CODES or isinstance(exc, OperationalError):
        return DatabaseError("Database is temporarily unavailable", table, constraint, "connection")
    if isinstance(exc, DBAPIError):
        return DatabaseError("A database error occurred", table, constraint, operation)
    return DatabaseError("Database operation failed", table, constraint, operation)


def db_errors(operation: str, resource: str) -> Callable:
    """Run a service method and translate any raw database error it raises."""

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except AppError:
                raise
            except SQLAlchemyError as exc:
                raise translate_db_error(exc, operation, resource) from exc

        return wrapper

    return decorator
