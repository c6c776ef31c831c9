"""
Base class for document stores.
"""

from abc import ABC, abstractmethod
from collections.abc import MutableSequence
from typing import Any, AsyncIterator, Mapping, NewType, Type, TypeVar

T = TypeVar('T')

#: Name of a collection inside the bound database.
CollectionName = NewType('CollectionName', str)

Query = Mapping[str, Any]


class DocumentStore(ABC):
    """
    Abstract base class for document stores.

    A document store exposes collection-scoped CRUD operations over an
    opaque document database. Queries and documents are passed through to
    the backend untouched; only ``find_one`` and ``find_many_into`` decode
    results into caller supplied types.
    """

    @abstractmethod
    async def delete_one(self, collection: str, query: Query) -> None:
        """
        Delete the first document matching the query.

        Matching nothing is not an error.

        Args:
            collection: Name of the collection
            query: Backend specific filter
        """
        pass

    @abstractmethod
    async def delete_many(self, collection: str, query: Query) -> None:
        """
        Delete every document matching the query.

        Matching nothing is not an error.

        Args:
            collection: Name of the collection
            query: Backend specific filter
        """
        pass

    @abstractmethod
    async def insert_one(self, collection: str, document: Any) -> None:
        """
        Insert a single document as-is.

        Args:
            collection: Name of the collection
            document: Model, dataclass or mapping to store
        """
        pass

    @abstractmethod
    async def upsert_one(self, collection: str, query: Query, update: Any) -> None:
        """
        Update the document matching the query, inserting it if none matches.

        Args:
            collection: Name of the collection
            query: Backend specific filter
            update: Update document, or a plain document to ``$set``
        """
        pass

    @abstractmethod
    async def find_one(self, collection: str, query: Query, document_type: Type[T] = dict) -> T:
        """
        Find the first document matching the query.

        Args:
            collection: Name of the collection
            query: Backend specific filter
            document_type: Type to decode the document into

        Returns:
            The decoded document
        """
        pass

    @abstractmethod
    def find_many(self, collection: str, query: Query) -> AsyncIterator[Mapping[str, Any]]:
        """
        Query for all documents matching the query without decoding them.

        Args:
            collection: Name of the collection
            query: Backend specific filter

        Returns:
            A lazy cursor over the raw documents
        """
        pass

    @abstractmethod
    async def find_many_into(
        self,
        collection: str,
        query: Query,
        destination: MutableSequence,
        document_type: Any,
    ) -> int:
        """
        Decode every matching document and append it to ``destination``.

        Args:
            collection: Name of the collection
            query: Backend specific filter
            destination: Growable sequence to append to
            document_type: Element type, a document type or ``Ref[DocumentType]``

        Returns:
            Number of appended elements
        """
        pass
