"""espscan - discover and classify ESP32 boards over Bluetooth LE."""

from __future__ import annotations

from importlib.metadata import version

from .config import ClassifierConfig, ScanningConfig, Settings, get_settings
from .core import (
    DeviceRegistry,
    PermissionGate,
    ScanSession,
    classify,
    filter_devices,
)
from .errors import AdapterUnavailableError, ErrorKind
from .models import (
    Advertisement,
    DeviceFilter,
    DeviceRecord,
    DeviceType,
    PowerState,
    ScanPhase,
    ScanState,
    SessionSnapshot,
)

__all__ = [
    "AdapterUnavailableError",
    "Advertisement",
    "ClassifierConfig",
    "DeviceFilter",
    "DeviceRecord",
    "DeviceRegistry",
    "DeviceType",
    "ErrorKind",
    "PermissionGate",
    "PowerState",
    "ScanPhase",
    "ScanSession",
    "ScanState",
    "ScanningConfig",
    "SessionSnapshot",
    "Settings",
    "__version__",
    "classify",
    "filter_devices",
    "get_settings",
]

__version__ = version("espscan")
