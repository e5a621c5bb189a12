from __future__ import annotations

import pytest

from espscan.config import (
    ClassifierConfig,
    ScanningConfig,
    Settings,
    get_settings,
    load_settings,
    render_settings_toml,
    resolve_config_path,
    write_settings,
)


def test_defaults_without_config_file():
    settings = get_settings()

    assert settings.scanning.scan_timeout_ms == 10_000
    assert settings.scanning.max_devices == 50
    assert settings.scanning.min_rssi_threshold == -100
    assert settings.scanning.scan_timeout == 10.0
    assert "ESP32" in settings.classifier.name_patterns
    assert 0x02E5 in settings.classifier.manufacturer_ids


def test_default_path_follows_xdg(tmp_path):
    path, exists = resolve_config_path()

    assert path == tmp_path / "xdg" / "espscan" / "config.toml"
    assert exists is False


def test_write_then_load(tmp_path):
    path = tmp_path / "nested" / "config.toml"
    settings = Settings(
        scanning=ScanningConfig(scan_timeout_ms=2500, max_devices=5),
        classifier=ClassifierConfig(
            name_patterns=("Blinky",), manufacturer_ids=(0x1234,)
        ),
    )

    write_settings(settings, path)

    assert load_settings(path) == settings


def test_company_ids_rendered_as_hex():
    text = render_settings_toml(Settings())
    assert "manufacturer_ids = [0x02E5, 0x00E0]" in text


def test_env_var_selects_config(tmp_path, monkeypatch):
    path = tmp_path / "custom.toml"
    path.write_text("[scanning]\nscan_timeout_ms = 1234\n")
    monkeypatch.setenv("ESPSCAN_CONFIG", str(path))

    assert get_settings().scanning.scan_timeout_ms == 1234


def test_env_var_pointing_nowhere(tmp_path, monkeypatch):
    monkeypatch.setenv("ESPSCAN_CONFIG", str(tmp_path / "missing.toml"))

    with pytest.raises(FileNotFoundError):
        get_settings()


@pytest.mark.parametrize(
    "content",
    [
        "[scanning\n",
        "[scanning]\nscan_timeout_ms = 0\n",
        "[scanning]\nmax_devices = 0\n",
        "[scanning]\nscanning_mode = 'loud'\n",
        "[classifier]\nmanufacturer_ids = [0x10000]\n",
        "[unknown]\nkey = 1\n",
    ],
)
def test_invalid_config_raises_value_error(tmp_path, content):
    path = tmp_path / "config.toml"
    path.write_text(content)

    with pytest.raises(ValueError):
        load_settings(path)


def test_empty_name_patterns_are_dropped():
    config = ClassifierConfig(name_patterns=("", "ESP32"))
    assert config.name_patterns == ("ESP32",)
