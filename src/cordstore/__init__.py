"""
cordstore - a thin async access layer over a MongoDB document store.
"""

from .config import StoreSettings
from .document_store import CollectionName, DocumentStore, MongoDBDocumentStore
from .errors import (
    ConfigurationError,
    DecodeError,
    DestinationTypeError,
    DocumentNotFoundError,
    DocumentStoreError,
    EncodeError,
    NotReadyError,
    OperationCancelledError,
    QueryError,
    ResourceError,
    StoreConnectionError,
    WriteError,
)
from .interfaces import Module, Plugin
from .logging_setup import setup_logging
from .materialize import Ref
from .session import Session, SessionState

__version__ = "0.1.0"

__all__ = [
    # Session
    "Session",
    "SessionState",
    "StoreSettings",
    # Document store
    "CollectionName",
    "DocumentStore",
    "MongoDBDocumentStore",
    "Ref",
    # Extensions
    "Module",
    "Plugin",
    # Errors
    "ConfigurationError",
    "DecodeError",
    "DestinationTypeError",
    "DocumentNotFoundError",
    "DocumentStoreError",
    "EncodeError",
    "NotReadyError",
    "OperationCancelledError",
    "QueryError",
    "ResourceError",
    "StoreConnectionError",
    "WriteError",
    # Logging
    "setup_logging",
]
