from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from espscan.errors import ErrorKind


class DeviceType(str, Enum):
    UNKNOWN = "unknown"
    ESP32 = "esp32"
    ESP32_S2 = "esp32_s2"
    ESP32_S3 = "esp32_s3"
    ESP32_C3 = "esp32_c3"


class PowerState(str, Enum):
    ON = "on"
    OFF = "off"
    OTHER = "other"


class PermissionOutcome(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"


class ScanPhase(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    ERROR = "error"
    PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class ScanState:
    """Current phase of a scan session; ``message`` is only set for errors."""

    phase: ScanPhase
    message: str | None = None

    @classmethod
    def idle(cls) -> ScanState:
        return cls(ScanPhase.IDLE)

    @classmethod
    def scanning(cls) -> ScanState:
        return cls(ScanPhase.SCANNING)

    @classmethod
    def error(cls, message: str) -> ScanState:
        return cls(ScanPhase.ERROR, message)

    @classmethod
    def permission_denied(cls) -> ScanState:
        return cls(ScanPhase.PERMISSION_DENIED)

    @property
    def is_scanning(self) -> bool:
        return self.phase is ScanPhase.SCANNING


class Advertisement(BaseModel):
    """One advertisement as reported by a radio adapter."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str
    name: str | None = None
    rssi: int | None = None
    is_connectable: bool = False
    manufacturer_data: bytes | None = None
    service_uuids: tuple[str, ...] | None = None


class DeviceRecord(BaseModel):
    """Latest known state of one radio identity."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str
    name: str | None = None
    rssi: int | None = None
    is_connectable: bool = False
    manufacturer_data: bytes | None = None
    service_uuids: frozenset[str] = Field(default_factory=frozenset)

    @classmethod
    def from_advertisement(cls, advertisement: Advertisement) -> DeviceRecord:
        return cls(
            id=advertisement.id,
            name=advertisement.name or None,
            rssi=advertisement.rssi,
            is_connectable=advertisement.is_connectable,
            manufacturer_data=advertisement.manufacturer_data or None,
            service_uuids=frozenset(advertisement.service_uuids or ()),
        )


class DeviceFilter(BaseModel):
    """Criteria for narrowing a device list; every criterion set must hold."""

    model_config = {"frozen": True, "extra": "forbid"}

    name_pattern: str | None = None
    min_rssi: int | None = None
    service_uuids: frozenset[str] | None = None
    esp32_only: bool = False

    @field_validator("name_pattern")
    @classmethod
    def _check_pattern(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"Invalid name pattern {value!r}: {exc}") from exc
        return value

    @property
    def is_empty(self) -> bool:
        return (
            self.name_pattern is None
            and self.min_rssi is None
            and not self.service_uuids
            and not self.esp32_only
        )


@dataclass(frozen=True)
class AdvertisementReceived:
    """An advertisement delivered by the subscription of scan ``generation``."""

    advertisement: Advertisement
    generation: int


@dataclass(frozen=True)
class RadioError:
    message: str
    generation: int | None = None


@dataclass(frozen=True)
class PowerStateChanged:
    state: PowerState
    raw_state: str | None = None


@dataclass(frozen=True)
class ScanTimeout:
    generation: int


SessionMessage = (
    Advertisement | AdvertisementReceived | RadioError | PowerStateChanged | ScanTimeout
)


@dataclass(frozen=True)
class SessionSnapshot:
    state: ScanState
    devices: tuple[DeviceRecord, ...]
    last_error: str | None
    error_kind: ErrorKind | None
    power_state: PowerState
