# errors.py
import logging
from contextlib import contextmanager

from sqlalchemy import exc as sa_exc

logger = logging.getLogger(__name__)


class InvoiceStoreError(Exception):
    """Base class for all errors raised by the model layer."""
    kind = "error"
    retryable = False

    def __init__(self, message, operation=None):
        super().__init__(message)
        self.operation = operation


class PasswordHashingError(InvoiceStoreError):
    """Raised when deriving a password hash fails."""
    kind = "hash-failure"


class InvalidInputError(InvoiceStoreError):
    """Raised when an insertable record or amount is malformed."""
    kind = "invalid-input"


class ConstraintViolationError(InvoiceStoreError):
    """Raised on duplicate key, foreign-key or not-null violations. Caller's fault."""
    kind = "constraint-violation"


class ConnectivityError(InvoiceStoreError):
    """Raised when the database cannot be reached. Safe to retry."""
    kind = "connectivity-failure"
    retryable = True


class SchemaMismatchError(InvoiceStoreError):
    """Raised when records and tables disagree. Programmer error."""
    kind = "schema-mismatch"


class ConfigurationError(InvoiceStoreError):
    """Raised when DATABASE_URL cannot be turned into an engine."""
    kind = "configuration-error"


_SCHEMA_MESSAGES = ("no such table", "no such column", "has no column named")


def classify_db_error(error, operation=None):
    """Map a SQLAlchemy error onto the model layer's error taxonomy."""
    message = str(getattr(error, "orig", None) or error)
    if isinstance(error, sa_exc.IntegrityError):
        return ConstraintViolationError(message, operation)
    if isinstance(error, sa_exc.OperationalError) and any(m in message.lower() for m in _SCHEMA_MESSAGES):
        return SchemaMismatchError(message, operation)
    if isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.DisconnectionError)):
        return ConnectivityError(message, operation)
    if isinstance(error, (sa_exc.ProgrammingError, sa_exc.NoSuchColumnError, sa_exc.CompileError)):
        return SchemaMismatchError(message, operation)
    return None


@contextmanager
def translate_db_errors(operation):
    """
    Re-raise SQLAlchemy errors raised inside the block as InvoiceStoreError subclasses.

    Errors that do not fit the taxonomy propagate unchanged.
    """
    try:
        yield
    except sa_exc.SQLAlchemyError as e:
        translated = classify_db_error(e, operation)
        if translated is None:
            raise
        if isinstance(translated, ConstraintViolationError):
            logger.warning("%s rejected by database: %s", operation, translated)
        else:
            logger.error("%s failed (%s): %s", operation, translated.kind, translated)
        raise translated from e
