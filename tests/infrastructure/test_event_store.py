"""EventStore — lazy connect, memoization, shared in-flight attempt, failure + retry.

Invariants:
    - First get_collection() builds one client and pings it
    - Concurrent first callers share one connection attempt
    - A failed attempt raises DatabaseConnectionError and the next call retries
"""

import asyncio
import gc

import pytest

from ibento.core.errors import DatabaseConnectionError
from ibento.infrastructure.database import EventStore
from tests.mock_mongo import FakeClientFactory, FakeCollection


async def test_connects_lazily_and_memoizes():
    factory = FakeClientFactory()
    store = EventStore("mongodb://db", client_factory=factory)
    assert factory.clients == []
    assert not store.connected

    first = await store.get_collection()
    second = await store.get_collection()

    assert first is second
    assert isinstance(first, FakeCollection)
    assert len(factory.clients) == 1
    assert factory.clients[0].commands == ["ping"]
    assert store.connected


async def test_uses_configured_database_and_collection():
    factory = FakeClientFactory()
    store = EventStore(
        "mongodb://db", database_name="prod", collection_name="happenings",
        client_factory=factory,
    )
    collection = await store.get_collection()
    assert factory.clients[0].collections[("prod", "happenings")] is collection


async def test_concurrent_first_callers_share_one_attempt():
    gate = asyncio.Event()
    factory = FakeClientFactory(gate=gate)
    store = EventStore("mongodb://db", client_factory=factory)

    waiters = [asyncio.create_task(store.get_collection()) for _ in range(5)]
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*waiters)

    assert len(factory.clients) == 1
    assert all(r is results[0] for r in results)


async def test_failed_connect_raises_and_next_call_retries():
    factory = FakeClientFactory(fail_ping=True)
    store = EventStore("mongodb://db", client_factory=factory)

    with pytest.raises(DatabaseConnectionError):
        await store.get_collection()
    assert factory.clients[0].closed

    factory.fail_ping = False
    await store.get_collection()
    assert len(factory.clients) == 2
    assert store.connected


async def test_concurrent_callers_all_see_the_same_failure():
    gate = asyncio.Event()
    factory = FakeClientFactory(fail_ping=True, gate=gate)
    store = EventStore("mongodb://db", client_factory=factory)

    waiters = [asyncio.create_task(store.get_collection()) for _ in range(3)]
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert len(factory.clients) == 1
    assert all(isinstance(r, DatabaseConnectionError) for r in results)


async def test_cancelled_caller_does_not_abort_shared_attempt():
    gate = asyncio.Event()
    factory = FakeClientFactory(gate=gate)
    store = EventStore("mongodb://db", client_factory=factory)

    cancelled = asyncio.create_task(store.get_collection())
    survivor = asyncio.create_task(store.get_collection())
    await asyncio.sleep(0)
    cancelled.cancel()
    gate.set()

    assert await survivor is not None
    assert len(factory.clients) == 1


async def test_ping_reports_connectivity():
    assert await EventStore(
        "mongodb://db", client_factory=FakeClientFactory(),
    ).ping() is True
    assert await EventStore(
        "mongodb://db", client_factory=FakeClientFactory(fail_ping=True),
    ).ping() is False


async def test_close_releases_client_and_allows_reconnect():
    factory = FakeClientFactory()
    store = EventStore("mongodb://db", client_factory=factory)
    await store.get_collection()

    await store.close()
    assert factory.clients[0].closed
    assert not store.connected

    await store.get_collection()
    assert len(factory.clients) == 2


async def test_close_before_connect_is_noop():
    store = EventStore("mongodb://db", client_factory=FakeClientFactory())
    await store.close()
    assert not store.connected


class _FlakyUriFactory:
    """First call fails URI parsing with a plain ValueError, later calls succeed."""

    def __init__(self):
        self.inner = FakeClientFactory()
        self.calls = 0

    def __call__(self, uri):
        self.calls += 1
        if self.calls == 1:
            raise ValueError("Port contains non-digit characters")
        return self.inner(uri)


async def test_uri_parse_value_error_is_mapped_and_retried():
    factory = _FlakyUriFactory()
    store = EventStore("mongodb://localhost:notaport", client_factory=factory)

    with pytest.raises(DatabaseConnectionError):
        await store.get_collection()
    assert not store.connected

    await store.get_collection()
    assert factory.calls == 2
    assert store.connected


async def test_failure_with_no_waiters_left_is_not_reported_unretrieved():
    loop = asyncio.get_running_loop()
    reported = []
    previous = loop.get_exception_handler()
    loop.set_exception_handler(lambda _loop, context: reported.append(context))
    try:
        gate = asyncio.Event()
        store = EventStore(
            "mongodb://db", client_factory=FakeClientFactory(fail_ping=True, gate=gate),
        )
        waiter = asyncio.create_task(store.get_collection())
        await asyncio.sleep(0)
        waiter.cancel()
        gate.set()
        for _ in range(5):
            await asyncio.sleep(0)
        del waiter
        gc.collect()
    finally:
        loop.set_exception_handler(previous)

    assert reported == []
    assert store._connecting is None


async def test_ping_uses_connection_even_if_closed_meanwhile():
    gate = asyncio.Event()
    factory = FakeClientFactory(gate=gate)
    store = EventStore("mongodb://db", client_factory=factory)

    async def connect_then_close():
        await store.get_collection()
        await store.close()

    closer = asyncio.create_task(connect_then_close())
    pinger = asyncio.create_task(store.ping())
    await asyncio.sleep(0)
    gate.set()

    await closer
    assert await pinger is True
    assert not store.connected
