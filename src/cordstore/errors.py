"""
Exceptions raised by the document store access layer.

Every error carries the name of the operation that failed and keeps the
underlying driver exception as ``__cause__``.
"""

from typing import Optional

from bson.errors import BSONError, InvalidDocument
from pymongo.errors import PyMongoError


class DocumentStoreError(Exception):
    """Base class for all errors raised by cordstore."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.operation = operation
        self.cause = cause
        detail = message if message is not None else (str(cause) if cause is not None else "")
        super().__init__(f"{operation}: {detail}" if detail else operation)


class ConfigurationError(DocumentStoreError):
    """The connection string is malformed or the client could not be built."""


class StoreConnectionError(DocumentStoreError):
    """Handshake, ping or teardown against the store failed."""


class NotReadyError(DocumentStoreError):
    """An operation was attempted without a healthy, bound database."""


class QueryError(DocumentStoreError):
    """A read failed for a reason other than "no match"."""


class DocumentNotFoundError(DocumentStoreError, LookupError):
    """A single-document read matched nothing."""


class DecodeError(DocumentStoreError, ValueError):
    """A matched document could not be shaped into the requested type."""


class DestinationTypeError(DocumentStoreError, TypeError):
    """The destination container or element type is not supported."""


class EncodeError(DocumentStoreError, TypeError):
    """A document could not be converted into a storable mapping."""


class WriteError(DocumentStoreError):
    """An insert, update or delete was rejected by the store."""


class ResourceError(DocumentStoreError):
    """A query resource (cursor) could not be released."""


class OperationCancelledError(DocumentStoreError):
    """The driver aborted a round trip because its client-side timeout expired."""


# Exceptions the driver raises for a failed round trip or for input it cannot encode.
DRIVER_ERRORS = (PyMongoError, BSONError, TypeError, ValueError)


def translate_driver_error(operation: str, exc: BaseException, error_cls: type) -> DocumentStoreError:
    """
    Wrap a driver exception in the matching cordstore error.

    Driver errors caused by an expired client-side timeout become
    ``OperationCancelledError``. A document BSON cannot represent becomes
    ``EncodeError`` on the write path. Everything else becomes ``error_cls``.
    """
    if getattr(exc, "timeout", False):
        return OperationCancelledError(operation, exc)
    if isinstance(exc, InvalidDocument) and error_cls is WriteError:
        return EncodeError(operation, exc)
    return error_cls(operation, exc)
