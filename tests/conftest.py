"""Pytest configuration and fixtures."""

import asyncio
import os

import httpx
import pytest

TEST_BASE_URL = "http://news.test"
TEST_HEALTH_URL = f"{TEST_BASE_URL}/api/health"

HEALTHY_BODY = {
    "status": "ok",
    "database": "connected",
    "message": "Database is connected and operational",
}
DISCONNECTED_BODY = {
    "status": "error",
    "database": "disconnected",
    "message": "Database connection is not available",
}


def pytest_configure(config):
    """Set up test environment variables before tests run."""
    os.environ.setdefault("NEWSDESK_API_BASE_URL", TEST_BASE_URL)
    os.environ.setdefault("NEWSDESK_PROBE_INTERVAL_SECONDS", "60")


class HealthBackend:
    """Scriptable stand-in for the backend's /api/health endpoint.

    Attributes can be changed between probes. Setting `gate` to an
    asyncio.Event makes each request wait for it before responding.
    """

    def __init__(self):
        self.status_code = 200
        self.body = HEALTHY_BODY
        self.content: bytes | None = None
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    def healthy(self) -> None:
        self.status_code, self.body, self.content, self.error = 200, HEALTHY_BODY, None, None

    def down(self, status_code: int = 503) -> None:
        self.status_code, self.body, self.content, self.error = (
            status_code,
            DISCONNECTED_BODY,
            None,
            None,
        )

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            if self.content is not None:
                return httpx.Response(self.status_code, content=self.content)
            return httpx.Response(self.status_code, json=self.body)
        finally:
            self.in_flight -= 1

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class RecordingFetch:
    """Fetch operation returning scripted responses and counting calls.

    Each entry is an httpx.Response to return, an exception to raise, or a
    (asyncio.Event, response) pair that waits for the event first. The last
    entry repeats once the script runs out.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls = 0

    async def __call__(self) -> httpx.Response:
        entry = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        if isinstance(entry, tuple):
            gate, entry = entry
            await gate.wait()
        if isinstance(entry, Exception):
            raise entry
        return entry


@pytest.fixture
def test_settings():
    """Provide settings pointing at the fake backend."""
    from newsdesk.config import Settings

    return Settings(
        api_base_url=TEST_BASE_URL,
        probe_interval_seconds=60,
        probe_timeout_seconds=1,
    )


@pytest.fixture
def health_backend():
    """Provide a healthy fake health endpoint."""
    return HealthBackend()


@pytest.fixture
def make_prober(health_backend, test_settings):
    """Factory building a prober wired to the fake health endpoint.

    Call it inside the running event loop of the test.
    """
    from newsdesk.connectivity import ConnectivityProber

    def factory(interval: float | None = None):
        return ConnectivityProber(
            client=health_backend.client(),
            health_url=TEST_HEALTH_URL,
            interval=interval,
            settings=test_settings,
        )

    return factory


@pytest.fixture
def recording_fetch():
    """Provide the RecordingFetch class."""
    return RecordingFetch
