from __future__ import annotations

from pathlib import Path

import typer

from espscan.config import Settings, get_settings, resolve_config_path
from espscan.errors import AdapterUnavailableError
from espscan.radio import Radio, SimulatedRadio, demo_advertisements

SIMULATED_INTERVAL = 0.05


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def build_radio(settings: Settings, simulate: bool = False) -> Radio:
    """Create the radio a scan should use.

    Raises AdapterUnavailableError when no real adapter can be created.
    """
    if simulate:
        return SimulatedRadio(demo_advertisements(), interval=SIMULATED_INTERVAL)

    try:
        from espscan.radio.bleak_radio import BleakRadio
    except ImportError as exc:
        raise AdapterUnavailableError(
            "BLE support is not installed; install espscan[ble] or use --simulate"
        ) from exc

    return BleakRadio(scanning_mode=settings.scanning.scanning_mode)
