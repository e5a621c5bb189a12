from __future__ import annotations

from .classifier import classify, is_esp32, signal_quality, type_label
from .filters import filter_devices, sort_devices
from .permissions import PermissionCapability, PermissionGate
from .registry import DeviceRegistry
from .session import ScanSession, SessionListener

__all__ = [
    "DeviceRegistry",
    "PermissionCapability",
    "PermissionGate",
    "ScanSession",
    "SessionListener",
    "classify",
    "filter_devices",
    "is_esp32",
    "signal_quality",
    "sort_devices",
    "type_label",
]
