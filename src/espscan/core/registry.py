from __future__ import annotations

import logging
import threading

from espscan.models import DeviceRecord

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Bounded store of device records keyed by id, in first-seen order.

    Once full, advertisements for unseen ids are dropped; existing entries are
    never evicted and keep receiving updates.
    """

    def __init__(self, max_devices: int) -> None:
        if max_devices < 1:
            raise ValueError("max_devices must be at least 1")
        self._max_devices = max_devices
        self._lock = threading.Lock()
        self._records: dict[str, DeviceRecord] = {}
        self._dropped = 0

    @property
    def max_devices(self) -> int:
        return self._max_devices

    @property
    def is_full(self) -> bool:
        with self._lock:
            return len(self._records) >= self._max_devices

    @property
    def dropped(self) -> int:
        """Advertisements from new ids rejected since the last clear."""
        with self._lock:
            return self._dropped

    def upsert(self, record: DeviceRecord) -> bool:
        with self._lock:
            if record.id in self._records:
                # dict assignment to an existing key keeps its position
                self._records[record.id] = record
                return True
            if len(self._records) >= self._max_devices:
                if self._dropped == 0:
                    logger.warning(
                        "Device registry full (%d devices); new devices are ignored",
                        self._max_devices,
                    )
                self._dropped += 1
                logger.debug("Dropped advertisement from new device %s", record.id)
                return False
            self._records[record.id] = record
            logger.debug("Discovered device %s (%s)", record.id, record.name)
            return True

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._dropped = 0

    def snapshot(self) -> tuple[DeviceRecord, ...]:
        with self._lock:
            return tuple(self._records.values())

    def get(self, device_id: str) -> DeviceRecord | None:
        with self._lock:
            return self._records.get(device_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, device_id: object) -> bool:
        with self._lock:
            return device_id in self._records
