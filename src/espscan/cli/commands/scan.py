from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from espscan.cli.common import build_radio, load_settings_or_exit
from espscan.config import ClassifierConfig, ScanningConfig, Settings
from espscan.core import (
    ScanSession,
    classify,
    filter_devices,
    is_esp32,
    signal_quality,
    sort_devices,
    type_label,
)
from espscan.errors import AdapterUnavailableError, ErrorKind
from espscan.models import DeviceFilter, DeviceRecord, ScanPhase, SessionSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ScanOutcome:
    snapshot: SessionSnapshot
    dropped: int


async def run_scan(
    settings: Settings, scanning: ScanningConfig, simulate: bool
) -> ScanOutcome:
    radio = build_radio(settings, simulate=simulate)
    try:
        async with ScanSession(radio, config=scanning) as session:
            loop = asyncio.get_running_loop()
            # no signal handlers on Windows loops or outside the main thread
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(signal.SIGINT, session.stop)
            try:
                await session.start()
                await session.wait_until_idle()
            finally:
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(signal.SIGINT)
            return ScanOutcome(session.snapshot(), session.registry.dropped)
    finally:
        await radio.aclose()


def describe_status(snapshot: SessionSnapshot, shown: int) -> str:
    if snapshot.error_kind is ErrorKind.RADIO_DISABLED:
        return "Bluetooth is disabled"
    if snapshot.state.phase is ScanPhase.PERMISSION_DENIED:
        return "Bluetooth permissions required"
    if snapshot.state.phase is ScanPhase.ERROR:
        return snapshot.state.message or "Scan failed"
    if snapshot.state.is_scanning:
        return "Scanning for devices..."
    if shown > 0:
        return f"Found {shown} device{'' if shown == 1 else 's'}"
    return "No devices found"


def render_devices(
    console: Console, devices: list[DeviceRecord], classifier: ClassifierConfig
) -> None:
    table = Table()
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Type", style="yellow")
    table.add_column("RSSI", justify="right")
    table.add_column("Signal")
    table.add_column("Connectable")
    table.add_column("Services")

    for device in devices:
        table.add_row(
            device.id,
            escape(device.name or "Unnamed Device"),
            type_label(classify(device, classifier)),
            f"{device.rssi} dBm" if device.rssi is not None else "Unknown",
            signal_quality(device.rssi),
            "Yes" if device.is_connectable else "No",
            ", ".join(sorted(device.service_uuids)),
        )

    console.print(table)


def register(app: typer.Typer) -> None:
    @app.command()
    def scan(
        timeout_ms: int | None = typer.Option(
            None, "--timeout-ms", min=1, help="Scan duration; config default if omitted"
        ),
        name: str | None = typer.Option(
            None, "--name", help="Only show devices whose name matches this regex"
        ),
        min_rssi: int | None = typer.Option(
            None,
            "--min-rssi",
            help="Hide devices weaker than this (dBm); config default if omitted",
        ),
        service: list[str] | None = typer.Option(
            None, "--service", "-s", help="Only show devices advertising this UUID"
        ),
        esp32_only: bool = typer.Option(
            False, "--esp32-only", help="Only show devices classified as ESP32"
        ),
        simulate: bool = typer.Option(
            False, "--simulate", help="Use a simulated radio instead of hardware"
        ),
    ) -> None:
        """Scan for BLE devices and classify ESP32 boards."""
        console = Console()
        settings = load_settings_or_exit()

        scanning = settings.scanning
        if timeout_ms is not None:
            scanning = scanning.model_copy(update={"scan_timeout_ms": timeout_ms})

        try:
            criteria = DeviceFilter(
                name_pattern=name,
                min_rssi=(
                    min_rssi if min_rssi is not None else scanning.min_rssi_threshold
                ),
                service_uuids=frozenset(service) if service else None,
                esp32_only=esp32_only,
            )
        except ValueError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(1) from exc

        console.print(
            f"Scanning for BLE devices ({scanning.scan_timeout_ms} ms, "
            "Ctrl+C to stop)..."
        )
        logger.info(
            "Scan settings: timeout=%dms, max_devices=%d, simulate=%s",
            scanning.scan_timeout_ms,
            scanning.max_devices,
            simulate,
        )
        try:
            outcome = asyncio.run(run_scan(settings, scanning, simulate))
        except AdapterUnavailableError as exc:
            console.print(f"[red]{exc}[/red]")
            raise typer.Exit(1) from exc

        snapshot = outcome.snapshot
        devices = sort_devices(
            filter_devices(snapshot.devices, criteria, settings.classifier)
        )

        if devices:
            render_devices(console, devices, settings.classifier)

        if outcome.dropped:
            console.print(
                f"[yellow]![/yellow] Device limit of {scanning.max_devices} reached; "
                f"{outcome.dropped} advertisement(s) from new devices ignored"
            )

        status = describe_status(snapshot, len(devices))
        failed = snapshot.state.phase in (
            ScanPhase.ERROR,
            ScanPhase.PERMISSION_DENIED,
        ) or (snapshot.error_kind is ErrorKind.RADIO_DISABLED)
        if failed:
            console.print(f"[red]{escape(status)}[/red]")
            if snapshot.last_error and snapshot.last_error != status:
                console.print(escape(snapshot.last_error))
            raise typer.Exit(1)

        esp32_count = sum(
            1 for device in snapshot.devices if is_esp32(device, settings.classifier)
        )
        if esp32_count:
            status += f" • {esp32_count} ESP32"
        console.print(f"\n[green]{status}[/green]")
