"""Scripted in-process radio for tests and hardware-free demos."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence

from espscan.models import Advertisement, PowerState
from espscan.peripheral import LedPeripheral

from .base import (
    AdvertisementCallback,
    CallbackSubscription,
    PowerStateCallback,
    Subscription,
)

logger = logging.getLogger(__name__)


def demo_advertisements() -> list[Advertisement]:
    return [
        LedPeripheral().advertisement(rssi=-48),
        Advertisement(
            id="24:0A:C4:00:00:02",
            name="ESP32-S3-DevKit",
            rssi=-62,
            is_connectable=True,
        ),
        Advertisement(
            id="24:0A:C4:00:00:03",
            name="NodeMCU-C3",
            rssi=-75,
            is_connectable=True,
        ),
        Advertisement(
            id="24:0A:C4:00:00:04",
            rssi=-81,
            manufacturer_data=bytes([0xE5, 0x02, 0x01, 0x00]),
        ),
        Advertisement(
            id="F4:12:FA:00:00:05",
            name="Living Room TV",
            rssi=-70,
            is_connectable=True,
            service_uuids=("0000180a-0000-1000-8000-00805f9b34fb",),
        ),
        Advertisement(id="6C:9A:11:00:00:06", is_connectable=False),
        # second sighting of the S3 board, stronger now
        Advertisement(
            id="24:0A:C4:00:00:02",
            name="ESP32-S3-DevKit",
            rssi=-58,
            is_connectable=True,
        ),
    ]


class SimulatedRadio:
    """Radio whose advertisements, errors and power changes are scripted.

    Scripted advertisements are replayed on the running event loop each time
    a subscription is opened, ``interval`` seconds apart. Tests can also push
    events directly with :meth:`emit` and :meth:`emit_error`.
    """

    def __init__(
        self,
        advertisements: Iterable[Advertisement] = (),
        power_state: PowerState = PowerState.ON,
        interval: float = 0.0,
        subscribe_error: Exception | None = None,
    ) -> None:
        self._advertisements = list(advertisements)
        self._power_state = power_state
        self._interval = interval
        self._subscribe_error = subscribe_error
        self._listeners: dict[int, AdvertisementCallback] = {}
        self._power_listeners: dict[int, PowerStateCallback] = {}
        self._handles: dict[int, list[asyncio.Handle]] = {}
        self._next_token = 0
        self.subscribe_count = 0
        self.unsubscribe_count = 0

    @property
    def active_subscriptions(self) -> int:
        return len(self._listeners)

    def _token(self) -> int:
        self._next_token += 1
        return self._next_token

    def subscribe(
        self,
        on_event: AdvertisementCallback,
        service_uuids: Sequence[str] | None = None,
    ) -> Subscription:
        if self._subscribe_error is not None:
            raise self._subscribe_error

        token = self._token()
        self._listeners[token] = on_event
        self.subscribe_count += 1
        self._schedule_replay(token, on_event, service_uuids)
        return CallbackSubscription(lambda: self._remove_listener(token))

    def _schedule_replay(
        self,
        token: int,
        on_event: AdvertisementCallback,
        service_uuids: Sequence[str] | None,
    ) -> None:
        if not self._advertisements:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, scripted advertisements not replayed")
            return

        wanted = {uuid.lower() for uuid in service_uuids} if service_uuids else None
        handles = []
        for index, advertisement in enumerate(self._advertisements):
            if wanted is not None and wanted.isdisjoint(
                uuid.lower() for uuid in advertisement.service_uuids or ()
            ):
                continue
            handles.append(
                loop.call_later(
                    self._interval * (index + 1), on_event, None, advertisement
                )
            )
        self._handles[token] = handles

    def _remove_listener(self, token: int) -> None:
        if self._listeners.pop(token, None) is not None:
            self.unsubscribe_count += 1
        for handle in self._handles.pop(token, []):
            handle.cancel()

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.remove()

    def on_power_state_change(self, callback: PowerStateCallback) -> Subscription:
        token = self._token()
        self._power_listeners[token] = callback
        return CallbackSubscription(lambda: self._power_listeners.pop(token, None))

    def current_power_state(self) -> PowerState:
        return self._power_state

    async def aclose(self) -> None:
        for token in list(self._listeners):
            self._remove_listener(token)
        self._power_listeners.clear()

    def emit(self, advertisement: Advertisement) -> None:
        for listener in list(self._listeners.values()):
            listener(None, advertisement)

    def emit_error(self, error: Exception) -> None:
        for listener in list(self._listeners.values()):
            listener(error, None)

    def set_power_state(self, state: PowerState, raw_state: str | None = None) -> None:
        self._power_state = state
        for callback in list(self._power_listeners.values()):
            callback(state, raw_state or state.value)
