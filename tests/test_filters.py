"""Tests for device filtering and ordering."""

from __future__ import annotations

import pytest

from espscan.core import filter_devices, sort_devices
from espscan.models import DeviceFilter, DeviceRecord

SERVICE = "12345678-1234-1234-1234-123456789abc"
DEVICE_INFO = "0000180a-0000-1000-8000-00805f9b34fb"


@pytest.fixture
def records() -> list[DeviceRecord]:
    return [
        DeviceRecord(id="a", name="ESP32-S3-DevKit", rssi=-60),
        DeviceRecord(id="b", name="NodeMCU", rssi=-80, service_uuids={SERVICE}),
        DeviceRecord(id="c", rssi=None),
        DeviceRecord(id="d", name="Television", rssi=-70, service_uuids={DEVICE_INFO}),
    ]


def _ids(records: list[DeviceRecord]) -> list[str]:
    return [record.id for record in records]


def test_no_criteria_returns_input_unchanged(records):
    assert filter_devices(records) == records
    assert filter_devices(records, DeviceFilter()) == records


def test_min_rssi_keeps_records_without_rssi(records):
    result = filter_devices(records, DeviceFilter(min_rssi=-70))
    assert _ids(result) == ["a", "c", "d"]


def test_name_pattern_is_case_insensitive_regex(records):
    result = filter_devices(records, DeviceFilter(name_pattern="^esp32|mcu$"))
    assert _ids(result) == ["a", "b"]


def test_name_pattern_excludes_unnamed_records(records):
    result = filter_devices(records, DeviceFilter(name_pattern=".*"))
    assert "c" not in _ids(result)


def test_service_uuids_match_any(records):
    criteria = DeviceFilter(service_uuids={SERVICE.upper(), "not-advertised"})
    assert _ids(filter_devices(records, criteria)) == ["b"]


def test_criteria_are_combined(records):
    criteria = DeviceFilter(name_pattern="e", min_rssi=-75)
    assert _ids(filter_devices(records, criteria)) == ["a", "d"]


def test_esp32_only(records):
    assert _ids(filter_devices(records, DeviceFilter(esp32_only=True))) == ["a", "b"]


def test_invalid_name_pattern_rejected():
    with pytest.raises(ValueError, match="Invalid name pattern"):
        DeviceFilter(name_pattern="(")


def test_sort_devices_strongest_first_then_name(records):
    extra = DeviceRecord(id="e", name="Alpha", rssi=None)
    result = sort_devices([*records, extra])
    assert _ids(result) == ["a", "d", "b", "c", "e"]
