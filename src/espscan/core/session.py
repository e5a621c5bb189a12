"""Scan lifecycle: permission gating, radio subscription, timeout, errors.

A session owns the scan state and the device registry. Radio callbacks, the
timeout and power-state changes are all turned into messages and posted to
the session's event loop, which is the only place state is mutated.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from functools import partial
from types import TracebackType

from espscan.config import ScanningConfig
from espscan.errors import ErrorKind
from espscan.models import (
    Advertisement,
    AdvertisementReceived,
    DeviceRecord,
    PermissionOutcome,
    PowerState,
    PowerStateChanged,
    RadioError,
    ScanPhase,
    ScanState,
    ScanTimeout,
    SessionMessage,
    SessionSnapshot,
)
from espscan.radio.base import Radio, Subscription

from .permissions import PermissionGate
from .registry import DeviceRegistry

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionSnapshot], None]

PERMISSION_DENIED_MESSAGE = "Bluetooth permissions are required for device scanning."
ENABLE_BLUETOOTH_MESSAGE = "Please enable Bluetooth to scan for devices"


class ScanSession:
    def __init__(
        self,
        radio: Radio,
        permissions: PermissionGate | None = None,
        config: ScanningConfig | None = None,
        service_uuids: Sequence[str] | None = None,
        registry: DeviceRegistry | None = None,
    ) -> None:
        self._radio = radio
        self._permissions = permissions or PermissionGate()
        self._config = config or ScanningConfig()
        self._service_uuids = tuple(service_uuids) if service_uuids else None
        self._registry = registry or DeviceRegistry(self._config.max_devices)

        self._state = ScanState.idle()
        self._last_error: str | None = None
        self._error_kind: ErrorKind | None = None
        self._power_state = radio.current_power_state()

        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscription: Subscription | None = None
        self._power_subscription: Subscription | None = None
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._permission_task: asyncio.Future[PermissionOutcome] | None = None
        # bumped on every scan start and every cancelled permission request
        self._generation = 0

        self._listeners: dict[int, SessionListener] = {}
        self._next_listener = 0
        self._idle_waiters: list[asyncio.Future[None]] = []

    async def __aenter__(self) -> ScanSession:
        self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def error_kind(self) -> ErrorKind | None:
        return self._error_kind

    @property
    def power_state(self) -> PowerState:
        return self._power_state

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def is_starting(self) -> bool:
        return self._permission_task is not None

    def devices(self) -> tuple[DeviceRecord, ...]:
        return self._registry.snapshot()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            devices=self._registry.snapshot(),
            last_error=self._last_error,
            error_kind=self._error_kind,
            power_state=self._power_state,
        )

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every change.

        Returns a callable that removes the listener.
        """
        self._next_listener += 1
        token = self._next_listener
        self._listeners[token] = listener
        return lambda: self._listeners.pop(token, None)

    def open(self) -> None:
        """Bind to the running loop and start following radio power changes."""
        self._bind_loop()
        if self._power_subscription is None:
            self._power_subscription = self._radio.on_power_state_change(
                self._on_power_state_change
            )
            self._power_state = self._radio.current_power_state()

    def close(self) -> None:
        self.stop()
        subscription, self._power_subscription = self._power_subscription, None
        if subscription is not None:
            subscription.remove()
        self._resolve_idle_waiters()

    async def start(self) -> None:
        if self._state.is_scanning or self._permission_task is not None:
            logger.debug("Scan already running, ignoring start()")
            return

        self._bind_loop()
        attempt = self._generation
        task = asyncio.ensure_future(self._permissions.request_permissions())
        self._permission_task = task
        try:
            await asyncio.wait({task})
        finally:
            if self._permission_task is task:
                self._permission_task = None
            if not task.done():
                task.cancel()

        if task.cancelled() or attempt != self._generation:
            logger.info("Scan start cancelled while waiting for permissions")
            self._resolve_idle_waiters()
            return

        if task.result() is PermissionOutcome.DENIED:
            logger.warning("Scan not started: permissions denied")
            self._state = ScanState.permission_denied()
            self._set_error(PERMISSION_DENIED_MESSAGE, ErrorKind.PERMISSION_DENIED)
            self._notify()
            return

        self._state = ScanState.idle()
        self._power_state = self._radio.current_power_state()
        if self._power_state is not PowerState.ON:
            logger.warning(
                "Scan not started: radio power is %s", self._power_state.value
            )
            self._set_error(ENABLE_BLUETOOTH_MESSAGE, ErrorKind.RADIO_DISABLED)
            self._notify()
            return

        self._begin_scan()

    def stop(self) -> None:
        if self._permission_task is not None:
            self._permission_task.cancel()
            self._permission_task = None
            self._generation += 1

        if not self._state.is_scanning:
            return

        self._teardown()
        self._state = ScanState.idle()
        logger.info("Scan stopped with %d device(s)", len(self._registry))
        self._notify()

    def clear(self) -> None:
        self._registry.clear()
        self._set_error(None, None)
        self._notify()

    def post(self, message: SessionMessage) -> None:
        """Queue a message for handling on the session's event loop.

        Safe to call from any thread. Before the session is bound to a loop
        the message is handled immediately.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            self._dispatch(message)
            return
        loop.call_soon_threadsafe(self._dispatch, message)

    async def wait_until_idle(self) -> None:
        if not self._state.is_scanning and self._permission_task is None:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._idle_waiters.append(waiter)
        await waiter

    def _bind_loop(self) -> None:
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            self._loop = loop

    def _begin_scan(self) -> None:
        self._registry.clear()
        self._generation += 1
        generation = self._generation
        self._state = ScanState.scanning()
        self._set_error(None, None)

        try:
            self._subscription = self._radio.subscribe(
                partial(self._on_radio_event, generation), self._service_uuids
            )
        except Exception as exc:
            logger.warning("Failed to start scan: %s", exc)
            self._subscription = None
            message = f"Failed to start scan: {exc}"
            self._state = ScanState.error(message)
            self._set_error(message, ErrorKind.SCAN_FAILURE)
            self._notify()
            return

        assert self._loop is not None
        self._timeout_handle = self._loop.call_later(
            self._config.scan_timeout, self.post, ScanTimeout(generation)
        )
        logger.info(
            "Scan started (timeout=%dms, max_devices=%d)",
            self._config.scan_timeout_ms,
            self._registry.max_devices,
        )
        self._notify()

    def _teardown(self) -> None:
        handle, self._timeout_handle = self._timeout_handle, None
        if handle is not None:
            handle.cancel()

        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            try:
                self._radio.unsubscribe(subscription)
            except Exception:
                logger.exception("Failed to unsubscribe from radio")

    def _on_radio_event(
        self,
        generation: int,
        error: Exception | None,
        advertisement: Advertisement | None,
    ) -> None:
        if error is not None:
            self.post(RadioError(str(error) or type(error).__name__, generation))
        elif advertisement is not None:
            self.post(AdvertisementReceived(advertisement, generation))

    def _on_power_state_change(self, state: PowerState, raw_state: str) -> None:
        self.post(PowerStateChanged(state, raw_state))

    def _dispatch(self, message: SessionMessage) -> None:
        try:
            if isinstance(message, AdvertisementReceived):
                if not self._is_stale(message.generation):
                    self._handle_advertisement(message.advertisement)
            elif isinstance(message, Advertisement):
                self._handle_advertisement(message)
            elif isinstance(message, RadioError):
                if not self._is_stale(message.generation):
                    self._handle_radio_error(message)
            elif isinstance(message, PowerStateChanged):
                self._handle_power_state(message)
            elif isinstance(message, ScanTimeout):
                self._handle_timeout(message)
            else:
                logger.warning("Ignoring unknown session message %r", message)
        except Exception:
            logger.exception("Failed to handle %s", type(message).__name__)

    def _is_stale(self, generation: int | None) -> bool:
        if generation is None or generation == self._generation:
            return False
        logger.debug(
            "Dropping event from scan %d (current %d)", generation, self._generation
        )
        return True

    def _handle_advertisement(self, advertisement: Advertisement) -> None:
        if not self._state.is_scanning:
            logger.debug("Advertisement from %s outside a scan", advertisement.id)
            return
        if self._registry.upsert(DeviceRecord.from_advertisement(advertisement)):
            self._notify()

    def _handle_radio_error(self, error: RadioError) -> None:
        if not self._state.is_scanning:
            logger.debug("Radio error outside a scan: %s", error.message)
            return
        logger.warning("Scan error: %s", error.message)
        self._abort(f"Scan error: {error.message}", ErrorKind.SCAN_FAILURE)

    def _handle_power_state(self, change: PowerStateChanged) -> None:
        self._power_state = change.state
        if change.state is PowerState.ON:
            if self._error_kind is ErrorKind.RADIO_DISABLED:
                if self._state.phase is ScanPhase.ERROR:
                    self._state = ScanState.idle()
                self._set_error(None, None)
            self._notify()
            return

        message = (
            f"Bluetooth is {change.raw_state or change.state.value}. "
            "Please enable Bluetooth."
        )
        logger.warning("%s", message)
        if self._state.is_scanning:
            self._abort(message, ErrorKind.RADIO_DISABLED)
            return
        self._set_error(message, ErrorKind.RADIO_DISABLED)
        self._notify()

    def _handle_timeout(self, timeout: ScanTimeout) -> None:
        if timeout.generation != self._generation or not self._state.is_scanning:
            return
        logger.info("Scan timed out after %dms", self._config.scan_timeout_ms)
        self.stop()

    def _abort(self, message: str, kind: ErrorKind) -> None:
        self._teardown()
        self._state = ScanState.error(message)
        self._set_error(message, kind)
        self._notify()

    def _set_error(self, message: str | None, kind: ErrorKind | None) -> None:
        self._last_error = message
        self._error_kind = kind

    def _resolve_idle_waiters(self) -> None:
        waiters, self._idle_waiters = self._idle_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _notify(self) -> None:
        if not self._state.is_scanning and self._permission_task is None:
            self._resolve_idle_waiters()
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners.values()):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
