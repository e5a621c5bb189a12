from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol

from espscan.models import Advertisement, PowerState

AdvertisementCallback = Callable[[Exception | None, Advertisement | None], None]
PowerStateCallback = Callable[[PowerState, str], None]


class Subscription(Protocol):
    def remove(self) -> None: ...


class Radio(Protocol):
    """Platform radio as seen by a scan session.

    Every call returns immediately; results arrive through the callbacks.
    ``on_event`` receives either an error or an advertisement, never both.
    Power callbacks receive the collapsed state and the adapter's raw name
    for it.
    """

    def subscribe(
        self,
        on_event: AdvertisementCallback,
        service_uuids: Sequence[str] | None = None,
    ) -> Subscription: ...

    def unsubscribe(self, subscription: Subscription) -> None: ...

    def on_power_state_change(self, callback: PowerStateCallback) -> Subscription: ...

    def current_power_state(self) -> PowerState: ...

    async def aclose(self) -> None: ...


class CallbackSubscription:
    """Subscription that runs a removal callback at most once."""

    def __init__(self, on_remove: Callable[[], None]) -> None:
        self._on_remove: Callable[[], None] | None = on_remove

    @property
    def active(self) -> bool:
        return self._on_remove is not None

    def remove(self) -> None:
        on_remove, self._on_remove = self._on_remove, None
        if on_remove is not None:
            on_remove()
