"""Map advertised names and manufacturer data to ESP32 device types."""

from __future__ import annotations

from espscan.config import ClassifierConfig
from espscan.models import DeviceRecord, DeviceType

# Checked in order, first hit wins
VARIANT_TOKENS: tuple[tuple[str, DeviceType], ...] = (
    ("S2", DeviceType.ESP32_S2),
    ("S3", DeviceType.ESP32_S3),
    ("C3", DeviceType.ESP32_C3),
)

_DEFAULT_CONFIG = ClassifierConfig()


def _company_id_bytes(company_id: int) -> bytes:
    return company_id.to_bytes(2, "little")


def classify(
    record: DeviceRecord, config: ClassifierConfig | None = None
) -> DeviceType:
    """Return the device type implied by a record's name or vendor data.

    A name matching one of the configured patterns wins over manufacturer
    data and is refined to a chip variant by its S2/S3/C3 token. Without a
    name match, a payload carrying a configured company id means a base ESP32.
    """
    config = config or _DEFAULT_CONFIG

    if not record.name and not record.manufacturer_data:
        return DeviceType.UNKNOWN

    name = (record.name or "").upper()
    if name and any(pattern.upper() in name for pattern in config.name_patterns):
        for token, device_type in VARIANT_TOKENS:
            if token in name:
                return device_type
        return DeviceType.ESP32

    payload = record.manufacturer_data
    if payload and any(
        _company_id_bytes(company_id) in payload
        for company_id in config.manufacturer_ids
    ):
        return DeviceType.ESP32

    return DeviceType.UNKNOWN


def is_esp32(record: DeviceRecord, config: ClassifierConfig | None = None) -> bool:
    return classify(record, config) is not DeviceType.UNKNOWN


def type_label(device_type: DeviceType) -> str:
    if device_type is DeviceType.UNKNOWN:
        return ""
    return device_type.value.replace("_", "-").upper()


def signal_quality(rssi: int | None) -> str:
    if rssi is None:
        return "Unknown"
    if rssi > -50:
        return "Excellent"
    if rssi > -60:
        return "Good"
    if rssi > -70:
        return "Fair"
    return "Weak"
