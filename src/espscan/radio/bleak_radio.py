"""Radio backed by :class:`bleak.BleakScanner`."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any, Literal

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import (
    BleakBluetoothNotAvailableError,
    BleakBluetoothNotAvailableReason,
    BleakError,
)

from espscan.errors import AdapterUnavailableError
from espscan.models import Advertisement, PowerState

from .base import (
    AdvertisementCallback,
    CallbackSubscription,
    PowerStateCallback,
    Subscription,
)

logger = logging.getLogger(__name__)

ScannerFactory = Callable[..., Any]


def manufacturer_payload(manufacturer_data: dict[int, bytes]) -> bytes | None:
    """Flatten bleak's company-id map back into on-air order: id (LE) + data."""
    payload = b"".join(
        company_id.to_bytes(2, "little") + bytes(data)
        for company_id, data in sorted(manufacturer_data.items())
    )
    return payload or None


def power_state_from_reason(
    reason: BleakBluetoothNotAvailableReason,
) -> tuple[PowerState, str]:
    state = (
        PowerState.OFF
        if reason is BleakBluetoothNotAvailableReason.POWERED_OFF
        else PowerState.OTHER
    )
    return state, reason.name.replace("_", " ").lower()


def advertisement_from_bleak(
    device: BLEDevice, advertisement_data: AdvertisementData
) -> Advertisement:
    # bleak does not expose connectability on every backend
    return Advertisement(
        id=device.address,
        name=advertisement_data.local_name or device.name,
        rssi=advertisement_data.rssi,
        is_connectable=True,
        manufacturer_data=manufacturer_payload(advertisement_data.manufacturer_data),
        service_uuids=tuple(advertisement_data.service_uuids) or None,
    )


class BleakRadio:
    """Share one BleakScanner between any number of subscriptions.

    The scanner starts with the first subscription and stops with the last.
    Starting and stopping run as tasks on the running loop, so neither call
    blocks the caller; start failures come back through ``on_event``.
    """

    def __init__(
        self,
        scanning_mode: Literal["active", "passive"] = "active",
        scanner_factory: ScannerFactory = BleakScanner,
    ) -> None:
        try:
            self._scanner = scanner_factory(
                detection_callback=self._on_detection,
                scanning_mode=scanning_mode,
            )
        except (BleakError, OSError, ValueError) as exc:
            raise AdapterUnavailableError(
                f"Bluetooth adapter not available: {exc}"
            ) from exc

        self._listeners: dict[int, tuple[AdvertisementCallback, set[str] | None]] = {}
        self._power_listeners: dict[int, PowerStateCallback] = {}
        self._power_state = PowerState.ON
        self._next_token = 0
        self._running = False
        self._start_task: asyncio.Task[None] | None = None
        self._stop_task: asyncio.Task[None] | None = None

    def _token(self) -> int:
        self._next_token += 1
        return self._next_token

    def subscribe(
        self,
        on_event: AdvertisementCallback,
        service_uuids: Sequence[str] | None = None,
    ) -> Subscription:
        loop = asyncio.get_running_loop()
        token = self._token()
        wanted = {uuid.lower() for uuid in service_uuids} if service_uuids else None
        self._listeners[token] = (on_event, wanted)
        if not self._running:
            self._running = True
            self._start_task = loop.create_task(self._start(self._stop_task))
        return CallbackSubscription(lambda: self._remove_listener(token))

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.remove()

    def on_power_state_change(self, callback: PowerStateCallback) -> Subscription:
        token = self._token()
        self._power_listeners[token] = callback
        return CallbackSubscription(lambda: self._power_listeners.pop(token, None))

    def current_power_state(self) -> PowerState:
        """bleak cannot watch adapter power, so starting the scanner is the probe.

        A failed start is reported through the power callbacks; before the next
        start the adapter is assumed on again.
        """
        return PowerState.ON

    async def aclose(self) -> None:
        """Drop every subscription and wait for the scanner to stop."""
        self._power_listeners.clear()
        if self._listeners:
            self._listeners.clear()
            if self._running:
                self._running = False
                self._stop_task = asyncio.get_running_loop().create_task(
                    self._stop(self._start_task)
                )
        if self._stop_task is not None:
            await asyncio.wait({self._stop_task})

    def _remove_listener(self, token: int) -> None:
        self._listeners.pop(token, None)
        if self._listeners or not self._running:
            return
        self._running = False
        self._stop_task = asyncio.get_running_loop().create_task(
            self._stop(self._start_task)
        )

    async def _start(self, pending_stop: asyncio.Task[None] | None) -> None:
        if pending_stop is not None:
            await asyncio.wait({pending_stop})
        try:
            await self._scanner.start()
        except BleakBluetoothNotAvailableError as exc:
            logger.warning("Bluetooth not available: %s", exc.args[0])
            self._running = False
            self._set_power_state(*power_state_from_reason(exc.reason))
            self._fail(exc)
            return
        except (BleakError, OSError) as exc:
            logger.warning("BLE scanner failed to start: %s", exc)
            self._running = False
            self._fail(exc)
            return
        logger.debug("BLE scanner started")
        if self._power_state is not PowerState.ON:
            self._set_power_state(PowerState.ON, "powered on")

    async def _stop(self, pending_start: asyncio.Task[None] | None) -> None:
        if pending_start is not None:
            await asyncio.wait({pending_start})
        try:
            await self._scanner.stop()
        except (BleakError, OSError) as exc:
            logger.warning("BLE scanner failed to stop cleanly: %s", exc)
            return
        logger.debug("BLE scanner stopped")

    def _fail(self, error: Exception) -> None:
        listeners, self._listeners = list(self._listeners.values()), {}
        for on_event, _ in listeners:
            on_event(error, None)

    def _set_power_state(self, state: PowerState, raw_state: str) -> None:
        self._power_state = state
        for callback in list(self._power_listeners.values()):
            callback(state, raw_state)

    def _on_detection(
        self, device: BLEDevice, advertisement_data: AdvertisementData
    ) -> None:
        advertisement = advertisement_from_bleak(device, advertisement_data)
        advertised = {uuid.lower() for uuid in advertisement.service_uuids or ()}
        for on_event, wanted in list(self._listeners.values()):
            if wanted is not None and wanted.isdisjoint(advertised):
                continue
            on_event(None, advertisement)
