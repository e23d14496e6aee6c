import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.commitments.repositories import (
    InMemoryCommitmentRepository,
    get_commitment_repository,
)
from app.services.queues.builder import QueueBuilder, get_queue_builder
from tests.helpers.metrics_stub import StubMetrics


class _SyncASGIClient:
    """Minimal synchronous wrapper around httpx.AsyncClient for ASGI apps."""

    def __init__(self, app):
        transport = httpx.ASGITransport(app=app)
        self._client = httpx.AsyncClient(transport=transport, base_url="http://testserver")

    def request(self, method: str, url: str, **kwargs):
        return asyncio.run(self._client.request(method, url, **kwargs))

    def get(self, url: str, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs):
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs):
        return self.request("PUT", url, **kwargs)

    def delete(self, url: str, **kwargs):
        return self.request("DELETE", url, **kwargs)

    def close(self) -> None:
        asyncio.run(self._client.aclose())


@pytest.fixture
def client():
    """Create test client compatible with older/newer httpx releases."""
    try:
        test_client = TestClient(app)
        yield test_client
    except TypeError:
        fallback_client = _SyncASGIClient(app)
        try:
            yield fallback_client
        finally:
            fallback_client.close()


@pytest.fixture
def stub_metrics() -> StubMetrics:
    return StubMetrics()


@pytest.fixture
def commitment_repository() -> InMemoryCommitmentRepository:
    return InMemoryCommitmentRepository()


@pytest.fixture
def queue_builder(commitment_repository, stub_metrics) -> QueueBuilder:
    return QueueBuilder(commitment_repository, metrics=stub_metrics)


@pytest.fixture
def api_overrides(commitment_repository, queue_builder):
    """Route API dependencies to the per-test repository and builder."""
    app.dependency_overrides[get_commitment_repository] = lambda: commitment_repository
    app.dependency_overrides[get_queue_builder] = lambda: queue_builder
    try:
        yield commitment_repository
    finally:
        app.dependency_overrides.pop(get_commitment_repository, None)
        app.dependency_overrides.pop(get_queue_builder, None)
