"""Asynchronous data-loading state machine used by every news widget.

A DataStateMachine wraps one caller-supplied fetch operation and reduces its
outcome to a FetchState in one of four phases: loading, error, empty-result
or ready. Fetches are gated by a ConnectivityProber: while the backend is
unreachable the machine reports an error without calling the fetch at all.

Every run takes a generation token when it is initiated. A run may only
publish state while its token is still the newest one, so when runs overlap
the last-initiated run wins and stale completions are dropped.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from newsdesk.config import Settings, get_settings
from newsdesk.connectivity import ConnectivityPhase, ConnectivityProber, ConnectivityStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMPTY_STATUS_MARKER = "empty"


class ResponseLike(Protocol):
    """The slice of an HTTP response the state machine relies on.

    httpx.Response satisfies this protocol.
    """

    @property
    def is_success(self) -> bool: ...

    @property
    def status_code(self) -> int: ...

    def json(self, **kwargs: Any) -> Any: ...


FetchOperation = Callable[[], Awaitable[ResponseLike]]


class FetchPhase(str, Enum):
    """Phase of a data-loading cycle."""

    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty-result"
    READY = "ready"


class FailureKind(str, Enum):
    """Why a fetch ended in the error phase."""

    CONNECTIVITY = "connectivity"
    TRANSPORT = "transport"
    APPLICATION = "application"


class FetchState(BaseModel, Generic[T]):
    """Snapshot of one data source as seen by its consumer."""

    model_config = ConfigDict(frozen=True)

    phase: FetchPhase = Field(default=FetchPhase.LOADING, description="Current phase")
    data: T | None = Field(default=None, description="Payload, or the initial value")
    error_message: str | None = Field(default=None, description="Set only in the error phase")
    empty_message: str | None = Field(
        default=None, description="Set only in the empty-result phase"
    )
    failure: FailureKind | None = Field(
        default=None, description="Failure classification, set only in the error phase"
    )

    @model_validator(mode="after")
    def check_messages_match_phase(self) -> "FetchState[T]":
        """Reject messages that do not belong to the phase."""
        is_error = self.phase is FetchPhase.ERROR
        if (self.error_message is not None) != is_error:
            raise ValueError("error_message must be set exactly when phase is error")
        if (self.failure is not None) != is_error:
            raise ValueError("failure must be set exactly when phase is error")
        if (self.empty_message is not None) != (self.phase is FetchPhase.EMPTY):
            raise ValueError("empty_message must be set exactly when phase is empty-result")
        return self

    @property
    def is_loading(self) -> bool:
        return self.phase is FetchPhase.LOADING

    @property
    def is_error(self) -> bool:
        return self.phase is FetchPhase.ERROR

    @property
    def is_empty(self) -> bool:
        return self.phase is FetchPhase.EMPTY

    @property
    def is_ready(self) -> bool:
        return self.phase is FetchPhase.READY


class FetchOptions(BaseModel):
    """Per-binding options for a DataStateMachine."""

    model_config = ConfigDict(extra="forbid")

    initial_data: Any = Field(default=None, description="Data shown before a successful load")
    empty_message: str | None = Field(
        default=None, description="Fallback text when the result set is empty"
    )
    error_message: str | None = Field(default=None, description="Fallback text on failure")
    dependencies: tuple[Any, ...] = Field(
        default=(), description="Values whose change triggers a re-run"
    )
    auto_fetch: bool = Field(default=True, description="Run immediately on bind")


StateListener = Callable[[FetchState], None]


def is_empty_payload(payload: Any) -> bool:
    """Check whether a success payload signals an empty result.

    Either an explicit ``status: "empty"`` marker or a zero-length ``data``
    sequence is enough on its own.
    """
    if not isinstance(payload, Mapping):
        return False
    if payload.get("status") == EMPTY_STATUS_MARKER:
        return True
    data = payload.get("data")
    return (
        isinstance(data, Sequence)
        and not isinstance(data, (str, bytes))
        and len(data) == 0
    )


def _payload_message(payload: Any) -> str | None:
    if isinstance(payload, Mapping) and payload.get("message"):
        return str(payload["message"])
    return None


class DataStateMachine(Generic[T]):
    """Loads one data source and tracks its loading/error/empty/ready state.

    Usage:
        machine = DataStateMachine(prober)
        async with machine.bound(client.category_articles("sports"),
                                 FetchOptions(dependencies=("sports",))):
            await machine.wait_until_settled()
            state = machine.state
    """

    def __init__(self, prober: ConnectivityProber, settings: Settings | None = None) -> None:
        self._prober = prober
        self._settings = settings or get_settings()
        self._fetch: FetchOperation | None = None
        self._options = FetchOptions()
        self._state: FetchState[T] = FetchState()
        self._listeners: list[StateListener] = []
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribe: Callable[[], None] | None = None
        self._generation = 0
        self._bound = False
        self._was_connected = False
        self._was_unreachable = False

    @property
    def state(self) -> FetchState[T]:
        """The latest published state."""
        return self._state

    @property
    def is_bound(self) -> bool:
        return self._bound

    @property
    def dependencies(self) -> tuple[Any, ...]:
        return self._options.dependencies

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called on every state transition.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    def bind(
        self,
        fetch_operation: FetchOperation,
        options: FetchOptions | None = None,
        **option_values: Any,
    ) -> None:
        """Attach a fetch operation and start observing connectivity.

        Binding an already bound machine unbinds it first. When auto_fetch is
        set, the first run is scheduled on the running event loop.

        Args:
            fetch_operation: Zero-argument callable returning an awaitable
                HTTP-like response.
            options: Binding options. Keyword arguments build one when omitted.
            **option_values: FetchOptions fields, used when options is None.

        Raises:
            pydantic.ValidationError: If option_values holds an unknown field.
            The machine is left as it was.
        """
        options = options or FetchOptions(**option_values)
        if self._bound:
            self.unbind()

        self._fetch = fetch_operation
        self._options = options
        self._state = FetchState(data=self._options.initial_data)
        connectivity = self._prober.current_status()
        self._was_connected = connectivity.is_connected
        self._was_unreachable = connectivity.phase is ConnectivityPhase.UNREACHABLE
        self._bound = True
        try:
            self._unsubscribe = self._prober.subscribe(self._on_connectivity)
            if self._options.auto_fetch:
                self._schedule()
        except BaseException:
            self.unbind()
            raise

    def unbind(self) -> None:
        """Release the prober subscription and silence any in-flight run. Idempotent."""
        was_bound = self._bound
        self._bound = False
        self._generation += 1
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        if was_bound:
            logger.debug("Data source unbound")

    @contextlib.asynccontextmanager
    async def bound(
        self,
        fetch_operation: FetchOperation,
        options: FetchOptions | None = None,
        **option_values: Any,
    ) -> AsyncIterator["DataStateMachine[T]"]:
        """Bind for the duration of an ``async with`` block."""
        self.bind(fetch_operation, options, **option_values)
        try:
            yield self
        finally:
            self.unbind()

    async def refetch(self) -> FetchState[T]:
        """Run the fetch now, superseding any earlier run.

        Returns:
            The visible state once this run has finished. If a newer run was
            initiated meanwhile, that run's state wins.

        Raises:
            RuntimeError: If no fetch operation is bound.
        """
        if not self._bound:
            raise RuntimeError("DataStateMachine.refetch() called while unbound")
        await self._run(self._next_generation())
        return self._state

    def set_dependencies(self, *values: Any) -> bool:
        """Report the consumer's current dependency values.

        Returns:
            True if the values changed and a re-run was scheduled.
        """
        values = tuple(values)
        if values == self._options.dependencies:
            return False
        self._options = self._options.model_copy(update={"dependencies": values})
        if self._bound:
            logger.debug(f"Dependencies changed to {values!r}, re-running fetch")
            self._schedule()
        return True

    async def wait_until_settled(self) -> FetchState[T]:
        """Wait for all scheduled runs to finish and return the visible state."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self._state

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _schedule(self) -> None:
        token = self._next_generation()
        task = asyncio.get_running_loop().create_task(self._run(token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_connectivity(self, status: ConnectivityStatus) -> None:
        unreachable = status.phase is ConnectivityPhase.UNREACHABLE
        if (
            status.is_connected == self._was_connected
            and unreachable == self._was_unreachable
        ):
            return
        self._was_connected = status.is_connected
        self._was_unreachable = unreachable
        if self._bound:
            logger.debug(f"Connectivity changed to {status.phase.value}, re-running fetch")
            self._schedule()

    async def _run(self, token: int) -> None:
        options = self._options
        connectivity = self._prober.current_status()
        if connectivity.phase is ConnectivityPhase.UNREACHABLE:
            self._apply(
                token,
                FetchState(
                    phase=FetchPhase.ERROR,
                    data=options.initial_data,
                    error_message=connectivity.message,
                    failure=FailureKind.CONNECTIVITY,
                ),
            )
            return

        if not self._apply(token, FetchState(phase=FetchPhase.LOADING, data=self._state.data)):
            return

        try:
            response = await self._fetch()
            payload = response.json()
        except Exception as e:
            logger.warning(f"Fetch failed: {e}")
            self._apply(
                token,
                FetchState(
                    phase=FetchPhase.ERROR,
                    data=options.initial_data,
                    error_message=(
                        options.error_message or self._settings.default_fetch_failure_message
                    ),
                    failure=FailureKind.TRANSPORT,
                ),
            )
            return

        self._apply(token, self._interpret(response, payload, options))

    def _interpret(
        self, response: ResponseLike, payload: Any, options: FetchOptions
    ) -> FetchState[T]:
        if response.is_success:
            if is_empty_payload(payload):
                return FetchState(
                    phase=FetchPhase.EMPTY,
                    data=options.initial_data,
                    empty_message=(
                        _payload_message(payload)
                        or options.empty_message
                        or self._settings.default_empty_message
                    ),
                )
            return FetchState(phase=FetchPhase.READY, data=payload)

        logger.info(f"Fetch returned HTTP {response.status_code}")
        return FetchState(
            phase=FetchPhase.ERROR,
            data=options.initial_data,
            error_message=(
                _payload_message(payload)
                or options.error_message
                or self._settings.default_error_message
            ),
            failure=FailureKind.APPLICATION,
        )

    def _apply(self, token: int, state: FetchState[T]) -> bool:
        """Publish state if the run holding `token` is still the newest."""
        if not self._bound or token != self._generation:
            logger.debug("Discarding stale fetch completion")
            return False
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed")
        return True
