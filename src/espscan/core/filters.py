from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from espscan.config import ClassifierConfig
from espscan.models import DeviceFilter, DeviceRecord

from .classifier import is_esp32


def _normalize_uuid(value: str) -> str:
    return value.strip().lower()


def filter_devices(
    records: Sequence[DeviceRecord],
    criteria: DeviceFilter | None = None,
    classifier: ClassifierConfig | None = None,
) -> list[DeviceRecord]:
    """Return the records matching every criterion set, in input order.

    Records without a reported RSSI are never excluded by ``min_rssi``.
    """
    if criteria is None or criteria.is_empty:
        return list(records)

    name_regex = (
        re.compile(criteria.name_pattern, re.IGNORECASE)
        if criteria.name_pattern is not None
        else None
    )
    wanted_services = (
        {_normalize_uuid(uuid) for uuid in criteria.service_uuids}
        if criteria.service_uuids
        else None
    )

    def matches(record: DeviceRecord) -> bool:
        if name_regex is not None:
            if record.name is None or not name_regex.search(record.name):
                return False
        if criteria.min_rssi is not None and record.rssi is not None:
            if record.rssi < criteria.min_rssi:
                return False
        if wanted_services is not None:
            advertised = {_normalize_uuid(uuid) for uuid in record.service_uuids}
            if advertised.isdisjoint(wanted_services):
                return False
        if criteria.esp32_only and not is_esp32(record, classifier):
            return False
        return True

    return [record for record in records if matches(record)]


def sort_devices(records: Iterable[DeviceRecord]) -> list[DeviceRecord]:
    """Strongest signal first, unknown RSSI last, then by name."""
    return sorted(
        records,
        key=lambda record: (
            record.rssi is None,
            -(record.rssi or 0),
            record.name or "",
        ),
    )
