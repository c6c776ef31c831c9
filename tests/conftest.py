"""
Pytest configuration and shared fixtures for cordstore tests.

Store behaviour is tested against ``mongomock_motor.AsyncMongoMockClient``,
an in-memory MongoDB with the Motor API. The ``mock_*`` fixtures wrap small
recording doubles instead; they exist for what mongomock cannot do: inject
driver failures, block a cursor, and report whether a cursor was closed.
"""

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from mongomock_motor import AsyncMongoMockClient

from cordstore import MongoDBDocumentStore, Session, StoreSettings


class MockCursor:
    """Async cursor over a snapshot of documents."""

    def __init__(self, documents: List[Dict[str, Any]], owner: "MockCollection"):
        self._documents = list(documents)
        self._position = 0
        self.closed = False
        self.close_error: Optional[Exception] = owner.cursor_close_error
        self.fetch_error: Optional[Exception] = owner.cursor_fetch_error
        self.block = owner.cursor_block

    def __aiter__(self):
        return self

    async def __anext__(self) -> Dict[str, Any]:
        if self.block is not None:
            await self.block.wait()
        if self.fetch_error is not None:
            raise self.fetch_error
        if self._position >= len(self._documents):
            raise StopAsyncIteration
        document = dict(self._documents[self._position])
        self._position += 1
        return document

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class MockCollection:
    """Collection double: records calls, raises injected errors, hands out inspectable cursors."""

    def __init__(self, name: str, calls: List[tuple]):
        self.name = name
        self.documents: List[Dict[str, Any]] = []
        self.calls = calls
        self.cursors: List[MockCursor] = []
        self.errors: Dict[str, Exception] = {}
        self.cursor_close_error: Optional[Exception] = None
        self.cursor_fetch_error: Optional[Exception] = None
        self.cursor_block: Optional[asyncio.Event] = None

    def _record(self, operation: str, *args) -> None:
        self.calls.append((self.name, operation) + args)
        if operation in self.errors:
            raise self.errors[operation]

    async def insert_one(self, document: Dict[str, Any]):
        self._record("insert_one", document)
        self.documents.append(document)
        return SimpleNamespace(inserted_id=None)

    async def delete_one(self, query: Dict[str, Any]):
        self._record("delete_one", query)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query: Dict[str, Any]):
        self._record("delete_many", query)
        return SimpleNamespace(deleted_count=0)

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any], upsert: bool = False):
        self._record("update_one", query, update, upsert)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def find_one(self, query: Dict[str, Any]):
        self._record("find_one", query)
        return dict(self.documents[0]) if self.documents else None

    def find(self, query: Dict[str, Any]) -> MockCursor:
        self._record("find", query)
        cursor = MockCursor(self.documents, self)
        self.cursors.append(cursor)
        return cursor


class MockDatabase:
    def __init__(self, name: str, calls: List[tuple]):
        self.name = name
        self._calls = calls
        self._collections: Dict[str, MockCollection] = {}

    def __getitem__(self, name: str) -> MockCollection:
        if name not in self._collections:
            self._collections[name] = MockCollection(name, self._calls)
        return self._collections[name]


class MockAdmin:
    def __init__(self, client: "MockMotorClient"):
        self._client = client

    async def command(self, command: str, **kwargs):
        self._client.calls.append(("admin", command, kwargs))
        error = self._client.command_errors.get(command)
        if error is not None:
            raise error
        return {"ok": 1.0}


class MockMotorClient:
    """Client double with injectable command and close failures."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.command_errors: Dict[str, Exception] = {}
        self.close_error: Optional[Exception] = None
        self.closed = False
        self.admin = MockAdmin(self)
        self._databases: Dict[str, MockDatabase] = {}

    def __getitem__(self, name: str) -> MockDatabase:
        if name not in self._databases:
            self._databases[name] = MockDatabase(name, self.calls)
        return self._databases[name]

    def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


@pytest.fixture
def settings():
    """Settings that do not depend on the environment."""
    return StoreSettings(uri="mongodb://localhost:27017", database_name="test_db")


# ---------------------------------------------------------------------------
# In-memory MongoDB
# ---------------------------------------------------------------------------

@pytest.fixture
def mongo_client():
    return AsyncMongoMockClient()


@pytest.fixture
def session(mongo_client, settings):
    """An unconnected session over the in-memory client."""
    return Session.connect(settings=settings, client=mongo_client)


@pytest.fixture
async def healthy_session(session):
    """A session that has been opened and health-checked."""
    await session.open()
    await session.health_check()
    return session


@pytest.fixture
def store(healthy_session):
    return MongoDBDocumentStore(healthy_session)


@pytest.fixture
def users(mongo_client, settings):
    """The ``users`` collection of the test database."""
    return mongo_client[settings.database_name]["users"]


# ---------------------------------------------------------------------------
# Failure injection
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_client():
    return MockMotorClient()


@pytest.fixture
def mock_session(mock_client, settings):
    """An unconnected session over the recording double."""
    return Session.connect(settings=settings, client=mock_client)


@pytest.fixture
async def mock_healthy_session(mock_session):
    await mock_session.open()
    await mock_session.health_check()
    return mock_session


@pytest.fixture
def mock_store(mock_healthy_session):
    return MongoDBDocumentStore(mock_healthy_session)


@pytest.fixture
def mock_users(mock_client, settings) -> MockCollection:
    """The ``users`` collection double of the test database."""
    return mock_client[settings.database_name]["users"]
