"""Connectivity prober for the news backend's data store.

The prober owns a single polling loop that asks the health endpoint whether
the database is reachable and keeps the latest answer in one status cell.
Any number of consumers read that cell; only the prober's own probes write it.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import Enum

import httpx
from pydantic import BaseModel, ConfigDict, Field, computed_field

from newsdesk.config import Settings, get_settings

logger = logging.getLogger(__name__)

CONNECTED_SENTINEL = "connected"
CHECKING_MESSAGE = "Checking database connection..."
PROBE_FAILURE_MESSAGE = "Failed to check database status"
CONNECTION_FAILED_MESSAGE = "Database connection failed"
CONNECTED_MESSAGE = "Database is connected and operational"


class ConnectivityPhase(str, Enum):
    """Backend reachability phase."""

    CHECKING = "checking"
    HEALTHY = "healthy"
    UNREACHABLE = "unreachable"


class ConnectivityStatus(BaseModel):
    """Result of the most recently completed probe."""

    model_config = ConfigDict(frozen=True)

    phase: ConnectivityPhase = Field(
        default=ConnectivityPhase.CHECKING, description="Reachability phase"
    )
    message: str = Field(default=CHECKING_MESSAGE, description="Diagnostic message")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_connected(self) -> bool:
        """True only when the backend reported a connected database."""
        return self.phase is ConnectivityPhase.HEALTHY


StatusListener = Callable[[ConnectivityStatus], None]


def _unreachable(message: str) -> ConnectivityStatus:
    return ConnectivityStatus(phase=ConnectivityPhase.UNREACHABLE, message=message)


class ConnectivityProber:
    """Periodically probes the health endpoint and shares the result.

    The prober is constructed explicitly and injected into every consumer.
    Probes never overlap: the polling loop awaits each probe before sleeping,
    and manual probes via check_now() are serialized with the loop.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        health_url: str | None = None,
        interval: float | None = None,
        timeout: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the prober.

        Args:
            client: HTTP client to probe with. Created lazily when omitted.
            health_url: Absolute health endpoint URL. Defaults to settings.
            interval: Seconds between probes. Defaults to settings.
            timeout: Per-probe timeout in seconds. Defaults to settings.
            settings: Settings override, mainly for tests.
        """
        settings = settings or get_settings()
        self.health_url = health_url or settings.health_url
        self.interval = settings.probe_interval_seconds if interval is None else interval
        self.timeout = settings.probe_timeout_seconds if timeout is None else timeout

        self._client = client
        self._owns_client = client is None
        self._status = ConnectivityStatus()
        self._listeners: list[StatusListener] = []
        self._task: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        # Bumped on stop() so probes that straddle it are dropped
        self._generation = 0

    @property
    def is_running(self) -> bool:
        """Whether the polling loop is active."""
        return self._task is not None and not self._task.done()

    def current_status(self) -> ConnectivityStatus:
        """Return the last known status without probing."""
        return self._status

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a listener called after every completed probe.

        Args:
            listener: Callable receiving the new status.

        Returns:
            A callable that removes the listener. Calling it twice is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> None:
        """Start probing now and then every `interval` seconds.

        Must be called from a running event loop. Starting a running prober
        does nothing.
        """
        if self.is_running:
            return
        logger.info(f"Starting connectivity probes against {self.health_url}")
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        """Cancel the polling loop and drop any in-flight probe. Idempotent."""
        self._generation += 1
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Connectivity probes stopped")

    async def aclose(self) -> None:
        """Stop probing and close the HTTP client if the prober created it."""
        await self.stop()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ConnectivityProber":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def check_now(self) -> ConnectivityStatus:
        """Run one probe immediately and publish its result.

        Waits for an in-flight probe to finish first, so at most one health
        request is outstanding at a time.

        Returns:
            The status produced by this probe, or the current status if the
            prober was stopped while the probe was in flight.
        """
        async with self._lock:
            generation = self._generation
            status = await self._probe()
            if generation != self._generation:
                logger.debug("Dropping probe result that completed after stop()")
                return self._status
            self._publish(status)
            return status

    async def _loop(self) -> None:
        while True:
            generation = self._generation
            try:
                await self.check_now()
            except Exception:
                logger.exception("Unexpected error during connectivity probe")
                if generation == self._generation:
                    self._publish(_unreachable(PROBE_FAILURE_MESSAGE))
            await asyncio.sleep(self.interval)

    async def _probe(self) -> ConnectivityStatus:
        try:
            response = await self._get_client().get(self.health_url, timeout=self.timeout)
            body = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Health request failed: {e}")
            return _unreachable(PROBE_FAILURE_MESSAGE)
        except ValueError as e:
            logger.warning(f"Health response was not valid JSON: {e}")
            return _unreachable(PROBE_FAILURE_MESSAGE)

        if not response.is_success:
            message = body.get("message") if isinstance(body, dict) else None
            return _unreachable(str(message or CONNECTION_FAILED_MESSAGE))

        if not isinstance(body, dict):
            logger.warning(f"Unexpected health response body: {body!r}")
            return _unreachable(PROBE_FAILURE_MESSAGE)

        if body.get("database") == CONNECTED_SENTINEL:
            return ConnectivityStatus(
                phase=ConnectivityPhase.HEALTHY,
                message=str(body.get("message") or CONNECTED_MESSAGE),
            )
        return _unreachable(str(body.get("message") or CONNECTION_FAILED_MESSAGE))

    def _publish(self, status: ConnectivityStatus) -> None:
        previous, self._status = self._status, status
        if previous.phase is not status.phase:
            logger.info(f"Connectivity {previous.phase.value} -> {status.phase.value}: {status.message}")
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("Connectivity listener failed")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client
