"""
Pytest configuration and fixtures for accountsync tests.

The document store is mongomock-motor (in-memory, Motor-compatible); the
identity provider is FakeIdentityClient. No external services are needed.
"""

import pytest
from mongomock_motor import AsyncMongoMockClient

from accountsync.services.activity_log import ActivityLogSink
from accountsync.services.mongo import MongoService
from fakes import FakeIdentityClient


def mock_client_factory(uri, **kwargs):
    return AsyncMongoMockClient()


@pytest.fixture
async def mongo():
    """Connected MongoService over a fresh in-memory database (indexes created)."""
    service = MongoService(
        uri="mongodb://localhost:27017",
        database="accountsync_test",
        client_factory=mock_client_factory,
        create_indexes=True,
    )
    await service.connect()
    yield service
    await service.disconnect()


@pytest.fixture
async def sink(mongo):
    """Activity log sink; drained at teardown so no write outlives the test."""
    activity_sink = ActivityLogSink(mongo)
    yield activity_sink
    await activity_sink.drain()


@pytest.fixture
def identity() -> FakeIdentityClient:
    return FakeIdentityClient()


async def activity_entries(sink: ActivityLogSink, **filters):
    """Drain pending writes and return matching entries, oldest first."""
    await sink.drain()
    return await sink.repo.find(filters, sort=[("timestamp", 1)])


@pytest.fixture
def read_activity():
    return activity_entries
