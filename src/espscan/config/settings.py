from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from .paths import default_config_path, expand_path

CONFIG_ENV_VAR = "ESPSCAN_CONFIG"

DEFAULT_NAME_PATTERNS = ("ESP32", "ESP32-", "ESP_", "NodeMCU", "WROOM", "WROVER")
# Espressif and the second id the LED controller firmware ships with
DEFAULT_MANUFACTURER_IDS = (0x02E5, 0x00E0)

DEFAULT_SERVICE_UUID = "12345678-1234-1234-1234-123456789abc"
DEFAULT_CHARACTERISTIC_UUID = "87654321-4321-4321-4321-cba987654321"


class ScanningConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    scan_timeout_ms: int = Field(default=10_000, gt=0)
    max_devices: int = Field(default=50, ge=1)
    min_rssi_threshold: int = Field(default=-100, le=0)
    scanning_mode: Literal["active", "passive"] = "active"

    @property
    def scan_timeout(self) -> float:
        return self.scan_timeout_ms / 1000


class ClassifierConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    name_patterns: tuple[str, ...] = DEFAULT_NAME_PATTERNS
    manufacturer_ids: tuple[int, ...] = DEFAULT_MANUFACTURER_IDS

    @field_validator("name_patterns")
    @classmethod
    def _drop_empty_patterns(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(pattern for pattern in value if pattern)

    @field_validator("manufacturer_ids")
    @classmethod
    def _check_company_ids(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        for company_id in value:
            if not 0 <= company_id <= 0xFFFF:
                raise ValueError(
                    f"manufacturer id {company_id:#x} is not a 16-bit company id"
                )
        return value


class PeripheralConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    service_uuid: str = DEFAULT_SERVICE_UUID
    characteristic_uuid: str = DEFAULT_CHARACTERISTIC_UUID


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    scanning: ScanningConfig = Field(default_factory=ScanningConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    peripheral: PeripheralConfig = Field(default_factory=PeripheralConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def _toml_string(value: str) -> str:
    return json.dumps(value)


def _toml_array(values: list[str]) -> str:
    return "[" + ", ".join(values) + "]"


def render_settings_toml(settings: Settings) -> str:
    scanning = settings.scanning
    classifier = settings.classifier
    peripheral = settings.peripheral
    lines = [
        "# espscan configuration",
        "",
        "[scanning]",
        f"scan_timeout_ms = {scanning.scan_timeout_ms}",
        f"max_devices = {scanning.max_devices}",
        f"min_rssi_threshold = {scanning.min_rssi_threshold}",
        f"scanning_mode = {_toml_string(scanning.scanning_mode)}",
        "",
        "[classifier]",
        "name_patterns = "
        + _toml_array([_toml_string(p) for p in classifier.name_patterns]),
        "manufacturer_ids = "
        + _toml_array([f"0x{cid:04X}" for cid in classifier.manufacturer_ids]),
        "",
        "[peripheral]",
        f"service_uuid = {_toml_string(peripheral.service_uuid)}",
        f"characteristic_uuid = {_toml_string(peripheral.characteristic_uuid)}",
        "",
    ]
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
