"""Database Gateway — lazily connected, memoized handle to the events collection.

Invariants:
    - At most one connection attempt is in flight; concurrent first callers
      await the same attempt instead of opening duplicate clients
    - Once connected, get_collection() returns the same handle for the process lifetime
    - A failed attempt raises DatabaseConnectionError and clears the memo,
      so the next request tries again (no automatic retry loop)
    - Driver exceptions (and URI parse ValueErrors) never escape this module unmapped

Design Decisions:
    - EventStore owned by app.state (created in create_app, closed in lifespan)
      instead of a module global: explicit ownership, trivially replaced in tests
    - asyncio.shield around the shared attempt: a client disconnect cancels its
      own wait, never the connect other requests depend on
    - ping on first connect: AsyncMongoClient connects lazily and would otherwise
      report an unreachable server on the first query instead
"""

import asyncio
import logging
from typing import Any, Callable, NamedTuple

from fastapi import Request
from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from ibento.core.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)


class _Connection(NamedTuple):
    client: Any
    collection: AsyncCollection


def _consume_failure(future: asyncio.Future) -> None:
    # Marks the result retrieved when every waiter was cancelled before it failed
    if not future.cancelled():
        future.exception()


class EventStore:
    """Owns the MongoDB client and the events collection handle."""

    def __init__(
        self,
        uri: str,
        database_name: str = "test",
        collection_name: str = "events",
        client_factory: Callable[[str], Any] = AsyncMongoClient,
    ):
        self._uri = uri
        self._database_name = database_name
        self._collection_name = collection_name
        self._client_factory = client_factory
        self._connection: _Connection | None = None
        self._connecting: asyncio.Future | None = None

    @property
    def connected(self) -> bool:
        return self._connection is not None

    async def get_collection(self) -> AsyncCollection:
        """Return the events collection, connecting on first use."""
        connection = await self._get_connection()
        return connection.collection

    async def _get_connection(self) -> _Connection:
        if self._connection is not None:
            return self._connection
        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._connect())
            self._connecting.add_done_callback(_consume_failure)
        return await asyncio.shield(self._connecting)

    async def _connect(self) -> _Connection:
        try:
            return await self._open()
        except BaseException:
            if self._connecting is asyncio.current_task():
                self._connecting = None
            raise

    async def _open(self) -> _Connection:
        try:
            client = self._client_factory(self._uri)
        except (PyMongoError, ValueError) as e:
            # URI parsing raises plain ValueError for some malformed hosts/ports
            logger.error(f"Invalid MongoDB connection settings: {e}")
            raise DatabaseConnectionError(
                "Failed to connect to MongoDB",
            ) from e

        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            await client.close()
            raise DatabaseConnectionError(
                "Failed to connect to MongoDB",
            ) from e

        self._connection = _Connection(
            client, client[self._database_name][self._collection_name],
        )
        logger.info(
            f"Connected to MongoDB "
            f"({self._database_name}.{self._collection_name})",
        )
        return self._connection

    async def ping(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            connection = await self._get_connection()
            await connection.client.admin.command("ping")
            return True
        except (DatabaseConnectionError, PyMongoError) as e:
            logger.error(f"MongoDB health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the client. A later get_collection() reconnects."""
        connection = self._connection
        self._connection = None
        self._connecting = None
        if connection is not None:
            await connection.client.close()
            logger.info("MongoDB connection closed")


async def get_events_collection(request: Request) -> AsyncCollection:
    """FastAPI dependency for the events collection."""
    store: EventStore = request.app.state.event_store
    return await store.get_collection()
