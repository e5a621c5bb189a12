"""Radio adapters.

The bleak adapter lives in :mod:`espscan.radio.bleak_radio` and needs the ``ble``
extra; it is not imported here.
"""

from __future__ import annotations

from .base import (
    AdvertisementCallback,
    CallbackSubscription,
    PowerStateCallback,
    Radio,
    Subscription,
)
from .simulated import SimulatedRadio, demo_advertisements

__all__ = [
    "AdvertisementCallback",
    "CallbackSubscription",
    "PowerStateCallback",
    "Radio",
    "SimulatedRadio",
    "Subscription",
    "demo_advertisements",
]
