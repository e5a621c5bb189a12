from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Where a failure came from, as surfaced to callers of a scan session."""

    PERMISSION_DENIED = "permission_denied"
    RADIO_DISABLED = "radio_disabled"
    SCAN_FAILURE = "scan_failure"
    ADAPTER_UNAVAILABLE = "adapter_unavailable"


class AdapterUnavailableError(RuntimeError):
    """The radio adapter could not be constructed at all."""
