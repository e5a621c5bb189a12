from __future__ import annotations

import pytest
from typer.testing import CliRunner

import espscan.cli.commands.scan as scan_cmd
from espscan.cli.app import app
from espscan.config import ScanningConfig, Settings, get_settings, write_settings
from espscan.errors import AdapterUnavailableError
from espscan.models import PowerState
from espscan.radio import SimulatedRadio

WIDE = {"COLUMNS": "200"}


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_version(runner):
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "espscan version" in result.stdout


def test_config_show_defaults(runner):
    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    assert "Config source: defaults" in result.stdout
    assert "[scanning]" in result.stdout
    assert "scan_timeout_ms = 10000" in result.stdout


def test_init_creates_config_once(runner, tmp_path):
    first = runner.invoke(app, ["init"], env=WIDE)
    second = runner.invoke(app, ["init"], env=WIDE)

    assert first.exit_code == 0
    assert "Created config" in first.stdout
    assert (tmp_path / "xdg" / "espscan" / "config.toml").exists()
    assert second.exit_code == 0
    assert "Config exists" in second.stdout


def test_simulated_scan_lists_devices(runner):
    result = runner.invoke(
        app, ["scan", "--simulate", "--timeout-ms", "600"], env=WIDE
    )

    assert result.exit_code == 0, result.output
    assert "ESP32-S3-DevKit" in result.stdout
    assert "ESP32-S3" in result.stdout
    assert "Living Room TV" in result.stdout
    assert "Found 6 devices" in result.stdout
    assert "4 ESP32" in result.stdout


def test_simulated_scan_with_filters(runner):
    result = runner.invoke(
        app,
        ["scan", "--simulate", "--timeout-ms", "600", "--esp32-only", "--name", "s3"],
        env=WIDE,
    )

    assert result.exit_code == 0, result.output
    assert "ESP32-S3-DevKit" in result.stdout
    assert "NodeMCU-C3" not in result.stdout
    assert "Found 1 device" in result.stdout


def test_scan_uses_config_timeout_and_limit(runner, tmp_path, monkeypatch):
    config_path = tmp_path / "config.toml"
    write_settings(
        Settings(scanning=ScanningConfig(scan_timeout_ms=600, max_devices=2)),
        config_path,
    )
    monkeypatch.setenv("ESPSCAN_CONFIG", str(config_path))
    get_settings.cache_clear()

    result = runner.invoke(app, ["scan", "--simulate"], env=WIDE)

    assert result.exit_code == 0, result.output
    assert "600 ms" in result.stdout
    assert "Device limit of 2 reached" in result.stdout
    assert "Found 2 devices" in result.stdout


def test_invalid_name_pattern_exits(runner):
    result = runner.invoke(app, ["scan", "--simulate", "--name", "("])
    assert result.exit_code == 1


def test_missing_adapter_exits(runner, monkeypatch):
    def _no_adapter(settings, simulate=False):
        raise AdapterUnavailableError("Bluetooth adapter not available: no hci0")

    monkeypatch.setattr(scan_cmd, "build_radio", _no_adapter)

    result = runner.invoke(app, ["scan", "--timeout-ms", "50"], env=WIDE)

    assert result.exit_code == 1
    assert "Bluetooth adapter not available" in result.stdout


def test_disabled_bluetooth_exits(runner, monkeypatch):
    monkeypatch.setattr(
        scan_cmd,
        "build_radio",
        lambda settings, simulate=False: SimulatedRadio(power_state=PowerState.OFF),
    )

    result = runner.invoke(app, ["scan", "--timeout-ms", "50"], env=WIDE)

    assert result.exit_code == 1
    assert "Bluetooth is disabled" in result.stdout
    assert "Please enable Bluetooth" in result.stdout
