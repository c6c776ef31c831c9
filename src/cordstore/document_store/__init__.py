"""
Document store implementations.
"""

from .base import CollectionName, DocumentStore
from .mongodb_store import MongoDBDocumentStore

__all__ = [
    'CollectionName',
    'DocumentStore',
    'MongoDBDocumentStore',
]
