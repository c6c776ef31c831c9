"""
MongoDB document store implementation.
"""
import logging
from collections.abc import MutableSequence
from typing import Any, Optional, Type, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorCursor
from pymongo.errors import PyMongoError
from .base import DocumentStore, Query
from ..errors import (
    DRIVER_ERRORS,
    DestinationTypeError,
    DocumentNotFoundError,
    DocumentStoreError,
    QueryError,
    ResourceError,
    WriteError,
    translate_driver_error,
)
from ..materialize import encode_document, is_operator_document, resolve_element
from ..session import Session

T = TypeVar('T')

BYTES_TYPES = (bytes, bytearray, memoryview)

logger = logging.getLogger(__name__)


class MongoDBDocumentStore(DocumentStore):
    """
    MongoDB implementation of the DocumentStore interface.

    Every call reads the session's database binding once, so a concurrent
    failed health check never leaves an operation half bound.

    Example:
        ```python
        from pydantic import BaseModel
        from cordstore import MongoDBDocumentStore, Ref, Session

        class User(BaseModel):
            name: str
            age: int

        async with Session.connect("mongodb://localhost:27017") as session:
            store = MongoDBDocumentStore(session)
            await store.upsert_one("users", {"name": "alice"}, {"name": "alice", "age": 30})

            users: list[User] = []
            await store.find_many_into("users", {}, users, User)

            shared: list[Ref[User]] = []
            await store.find_many_into("users", {}, shared, Ref[User])
        ```
    """

    def __init__(self, session: Session):
        """
        Initialize MongoDB document store.

        Args:
            session: Session whose bound database is used for every operation
        """
        self.session = session

    def _collection(self, collection: str) -> AsyncIOMotorCollection:
        return self.session.database[collection]

    async def delete_one(self, collection: str, query: Query) -> None:
        """
        Delete the first document matching the query.

        Args:
            collection: Name of the collection
            query: MongoDB filter query
        """
        col = self._collection(collection)
        try:
            result = await col.delete_one(query)
        except DRIVER_ERRORS as exc:
            raise translate_driver_error("delete document", exc, WriteError) from exc
        logger.debug(f"Deleted {result.deleted_count} document(s) from '{collection}'")

    async def delete_many(self, collection: str, query: Query) -> None:
        """
        Delete all documents matching the query.

        Args:
            collection: Name of the collection
            query: MongoDB filter query
        """
        col = self._collection(collection)
        try:
            result = await col.delete_many(query)
        except DRIVER_ERRORS as exc:
            raise translate_driver_error("delete documents", exc, WriteError) from exc
        logger.debug(f"Deleted {result.deleted_count} document(s) from '{collection}'")

    async def insert_one(self, collection: str, document: Any) -> None:
        """
        Insert a single document.

        Args:
            collection: Name of the collection
            document: Model, dataclass or mapping to store
        """
        col = self._collection(collection)
        doc_dict = encode_document(document)
        try:
            await col.insert_one(doc_dict)
        except DRIVER_ERRORS as exc:
            raise translate_driver_error("insert document", exc, WriteError) from exc
        logger.debug(f"Inserted document into '{collection}'")

    async def upsert_one(self, collection: str, query: Query, update: Any) -> None:
        """
        Upsert a single document.

        Args:
            collection: Name of the collection
            query: MongoDB filter query
            update: Update operators, or a document whose fields are ``$set``
        """
        col = self._collection(collection)
        if not is_operator_document(update):
            update = {'$set': encode_document(update)}
        try:
            result = await col.update_one(query, update, upsert=True)
        except DRIVER_ERRORS as exc:
            raise translate_driver_error("upsert document", exc, WriteError) from exc
        logger.debug(
            f"Upserted into '{collection}' "
            f"(matched={result.matched_count}, upserted_id={result.upserted_id})"
        )

    async def find_one(self, collection: str, query: Query, document_type: Type[T] = dict) -> T:
        """
        Find a single document and decode it.

        Args:
            collection: Name of the collection
            query: MongoDB filter query
            document_type: Type to decode into, may be ``Ref[DocumentType]``

        Returns:
            The decoded document

        Raises:
            DocumentNotFoundError: If no document matches
            DecodeError: If the document does not fit ``document_type``
            QueryError: If the query failed
        """
        col = self._collection(collection)
        shape = resolve_element(document_type)
        try:
            doc_dict = await col.find_one(query)
        except DRIVER_ERRORS as exc:
            raise translate_driver_error("find document", exc, QueryError) from exc

        if doc_dict is None:
            raise DocumentNotFoundError("find document", message=f"no document in '{collection}' matches {query!r}")

        return shape.decode(doc_dict)

    def find_many(self, collection: str, query: Query) -> AsyncIOMotorCursor:
        """
        Query for all documents matching the query.

        The cursor is lazy; nothing is sent to the server until it is
        iterated. An empty result is an empty cursor, not an error.

        Args:
            collection: Name of the collection
            query: MongoDB filter query

        Returns:
            Cursor over the raw documents
        """
        col = self._collection(collection)
        try:
            return col.find(query)
        except DRIVER_ERRORS as exc:
            raise translate_driver_error("find documents", exc, QueryError) from exc

    async def find_many_into(
        self,
        collection: str,
        query: Query,
        destination: MutableSequence,
        document_type: Any,
    ) -> int:
        """
        Find all matching documents and append them to ``destination``.

        Documents are appended in the order the server returns them. If a
        document fails to decode the call stops with ``DecodeError`` and the
        elements appended so far are left in place. The cursor is closed on
        every exit path.

        Args:
            collection: Name of the collection
            query: MongoDB filter query
            destination: Growable sequence (e.g. a list) to append to
            document_type: Element type; ``Ref[X]`` appends ``Ref`` cells holding ``X``

        Returns:
            Number of appended elements

        Raises:
            DestinationTypeError: If ``destination`` is not a mutable sequence
            DecodeError: If a document does not fit the element type
            QueryError: If the query failed
            ResourceError: If the cursor could not be closed
        """
        col = self._collection(collection)
        # bytearray is a MutableSequence but only holds ints.
        if not isinstance(destination, MutableSequence) or isinstance(destination, BYTES_TYPES):
            raise DestinationTypeError(
                "find documents",
                message=f"destination must be a mutable sequence of documents, got {type(destination).__name__}"
            )
        shape = resolve_element(document_type)

        try:
            cursor = col.find(query)
        except DRIVER_ERRORS as exc:
            raise translate_driver_error("find documents", exc, QueryError) from exc

        appended = 0
        pending: Optional[BaseException] = None
        try:
            try:
                async for doc_dict in cursor:
                    destination.append(shape.decode(doc_dict))
                    appended += 1
            except DocumentStoreError:
                raise
            except DRIVER_ERRORS as exc:
                raise translate_driver_error("find documents", exc, QueryError) from exc
        except BaseException as exc:
            pending = exc
            raise
        finally:
            await self._close_cursor(cursor, pending)

        logger.debug(f"Materialized {appended} document(s) from '{collection}'")
        return appended

    async def _close_cursor(self, cursor: AsyncIOMotorCursor, pending: Optional[BaseException]) -> None:
        """Close a cursor; a close failure is only raised if nothing else is."""
        try:
            await cursor.close()
        except PyMongoError as exc:
            if pending is not None:
                logger.warning(f"Failed to close cursor after {type(pending).__name__}: {exc}")
                return
            raise ResourceError("close cursor", exc) from exc
