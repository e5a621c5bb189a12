from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Protocol

from espscan.models import PermissionOutcome

logger = logging.getLogger(__name__)


class PermissionCapability(Protocol):
    """Platform hook that asks the user/OS for the named permissions."""

    async def request_all(
        self, permissions: Sequence[str]
    ) -> Mapping[str, PermissionOutcome]: ...


class PermissionGate:
    """Resolve scan access before a session may touch the radio.

    Without a capability the platform needs no permissions and every request
    is granted. Otherwise every requested permission must come back granted.
    """

    def __init__(
        self,
        capability: PermissionCapability | None = None,
        permissions: Sequence[str] = (),
    ) -> None:
        self._capability = capability
        self._permissions = tuple(permissions)

    @property
    def permissions(self) -> tuple[str, ...]:
        return self._permissions

    async def request_permissions(self) -> PermissionOutcome:
        if self._capability is None or not self._permissions:
            return PermissionOutcome.GRANTED

        try:
            results = await self._capability.request_all(self._permissions)
        except Exception:
            logger.exception("Permission request failed")
            return PermissionOutcome.DENIED

        missing = [
            name
            for name in self._permissions
            if results.get(name) != PermissionOutcome.GRANTED
        ]
        if missing:
            logger.info("Permissions denied: %s", ", ".join(missing))
            return PermissionOutcome.DENIED
        return PermissionOutcome.GRANTED
