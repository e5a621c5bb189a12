"""Tests for the LED controller wire protocol."""

from __future__ import annotations

import pytest

from espscan.core import classify
from espscan.models import DeviceRecord, DeviceType
from espscan.peripheral import (
    SERVICE_UUID,
    Command,
    LedPeripheral,
    encode_command,
    parse_command,
    parse_status,
)


def test_initial_value():
    peripheral = LedPeripheral()
    assert peripheral.read() == b"Hello World"
    assert peripheral.led_on is False


def test_on_off_toggle():
    peripheral = LedPeripheral()

    peripheral.write(b"ON")
    assert peripheral.led_on is True
    peripheral.write(b"OFF")
    assert peripheral.led_on is False
    peripheral.write(b"TOGGLE")
    assert peripheral.led_on is True
    peripheral.write(b"TOGGLE")
    assert peripheral.led_on is False


def test_status_updates_value_and_notifies():
    peripheral = LedPeripheral()
    notifications: list[bytes] = []
    peripheral.on_notify(notifications.append)

    peripheral.write(encode_command(Command.ON))
    assert notifications == []

    peripheral.write(encode_command(Command.STATUS))
    assert peripheral.read() == b"LED_ON"
    assert notifications == [b"LED_ON"]

    peripheral.write(b"OFF")
    peripheral.write(b"STATUS")
    assert notifications == [b"LED_ON", b"LED_OFF"]


@pytest.mark.parametrize("payload", [b"on", b" ON", b"ON\n", b"BLINK", b"", b"\xff"])
def test_unknown_payloads_are_ignored(payload):
    peripheral = LedPeripheral(led_on=True)

    peripheral.write(payload)

    assert peripheral.led_on is True
    assert peripheral.read() == b"Hello World"


def test_parse_command():
    assert parse_command(b"TOGGLE") is Command.TOGGLE
    assert parse_command(b"toggle") is None


def test_parse_status():
    assert parse_status(b"LED_ON") is True
    assert parse_status(b"LED_OFF") is False
    assert parse_status(b"Hello World") is None


def test_advertisement_is_classified_as_esp32():
    advertisement = LedPeripheral().advertisement(rssi=-42)

    record = DeviceRecord.from_advertisement(advertisement)

    assert SERVICE_UUID in record.service_uuids
    assert record.is_connectable is True
    assert classify(record) is DeviceType.ESP32
