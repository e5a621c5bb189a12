from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

from espscan.core import PermissionGate
from espscan.models import PermissionOutcome

SCAN = "android.permission.BLUETOOTH_SCAN"
CONNECT = "android.permission.BLUETOOTH_CONNECT"
LOCATION = "android.permission.ACCESS_FINE_LOCATION"


class FakeCapability:
    def __init__(self, answers: Mapping[str, PermissionOutcome]) -> None:
        self.answers = dict(answers)
        self.calls = 0

    async def request_all(
        self, permissions: Sequence[str]
    ) -> Mapping[str, PermissionOutcome]:
        self.calls += 1
        return {name: self.answers[name] for name in permissions if name in self.answers}


class BrokenCapability:
    async def request_all(
        self, permissions: Sequence[str]
    ) -> Mapping[str, PermissionOutcome]:
        raise OSError("permission service crashed")


def test_no_capability_always_granted():
    gate = PermissionGate()
    assert asyncio.run(gate.request_permissions()) is PermissionOutcome.GRANTED


def test_all_granted():
    capability = FakeCapability(
        {
            SCAN: PermissionOutcome.GRANTED,
            CONNECT: PermissionOutcome.GRANTED,
            LOCATION: PermissionOutcome.GRANTED,
        }
    )
    gate = PermissionGate(capability, [SCAN, CONNECT, LOCATION])

    assert asyncio.run(gate.request_permissions()) is PermissionOutcome.GRANTED


def test_single_denial_denies_everything():
    capability = FakeCapability(
        {
            SCAN: PermissionOutcome.GRANTED,
            CONNECT: PermissionOutcome.DENIED,
            LOCATION: PermissionOutcome.GRANTED,
        }
    )
    gate = PermissionGate(capability, [SCAN, CONNECT, LOCATION])

    assert asyncio.run(gate.request_permissions()) is PermissionOutcome.DENIED


def test_missing_answer_counts_as_denied():
    capability = FakeCapability({SCAN: PermissionOutcome.GRANTED})
    gate = PermissionGate(capability, [SCAN, LOCATION])

    assert asyncio.run(gate.request_permissions()) is PermissionOutcome.DENIED


def test_failing_capability_is_denied():
    gate = PermissionGate(BrokenCapability(), [SCAN])

    assert asyncio.run(gate.request_permissions()) is PermissionOutcome.DENIED


def test_repeated_requests_are_safe():
    capability = FakeCapability({SCAN: PermissionOutcome.GRANTED})
    gate = PermissionGate(capability, [SCAN])

    async def ask_twice() -> list[PermissionOutcome]:
        return [await gate.request_permissions(), await gate.request_permissions()]

    assert asyncio.run(ask_twice()) == [PermissionOutcome.GRANTED] * 2
    assert capability.calls == 2
