"""Wire protocol of the ESP32 LED controller peripheral.

The peripheral exposes one service with one read/write/notify characteristic.
Clients write one of four plain-text commands; anything else is ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from espscan.config.settings import DEFAULT_CHARACTERISTIC_UUID, DEFAULT_SERVICE_UUID
from espscan.models import Advertisement

logger = logging.getLogger(__name__)

SERVICE_UUID = DEFAULT_SERVICE_UUID
CHARACTERISTIC_UUID = DEFAULT_CHARACTERISTIC_UUID
DEVICE_NAME = "ESP32_LED_Controller"
INITIAL_VALUE = b"Hello World"

STATUS_ON = "LED_ON"
STATUS_OFF = "LED_OFF"


class Command(str, Enum):
    ON = "ON"
    OFF = "OFF"
    TOGGLE = "TOGGLE"
    STATUS = "STATUS"


def encode_command(command: Command) -> bytes:
    return command.value.encode("utf-8")


def parse_command(payload: bytes) -> Command | None:
    """Return the command a write payload carries, or None if unrecognized.

    Matching is exact: no trimming, no case folding.
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        return None
    try:
        return Command(text)
    except ValueError:
        return None


def parse_status(value: bytes) -> bool | None:
    """Decode a STATUS notification into the LED state."""
    text = value.decode("utf-8", errors="replace")
    if text == STATUS_ON:
        return True
    if text == STATUS_OFF:
        return False
    return None


@dataclass
class LedPeripheral:
    """In-process model of the LED controller firmware."""

    name: str = DEVICE_NAME
    address: str = "24:0A:C4:00:00:01"
    service_uuid: str = SERVICE_UUID
    led_on: bool = False
    value: bytes = INITIAL_VALUE

    _notify_handlers: list[Callable[[bytes], None]] = field(
        default_factory=list, repr=False
    )

    def on_notify(self, handler: Callable[[bytes], None]) -> None:
        self._notify_handlers.append(handler)

    def read(self) -> bytes:
        return self.value

    def write(self, payload: bytes) -> None:
        command = parse_command(payload)
        if command is None:
            logger.debug("Ignoring unknown command %r", payload)
            return

        if command is Command.ON:
            self.led_on = True
        elif command is Command.OFF:
            self.led_on = False
        elif command is Command.TOGGLE:
            self.led_on = not self.led_on
        else:
            self.value = (STATUS_ON if self.led_on else STATUS_OFF).encode("utf-8")
            for handler in self._notify_handlers:
                handler(self.value)
        logger.debug("Handled %s, LED is %s", command.value, self.status)

    @property
    def status(self) -> str:
        return STATUS_ON if self.led_on else STATUS_OFF

    def advertisement(self, rssi: int | None = -55) -> Advertisement:
        return Advertisement(
            id=self.address,
            name=self.name,
            rssi=rssi,
            is_connectable=True,
            service_uuids=(self.service_uuid,),
        )
