from __future__ import annotations

from pathlib import Path

import pytest

from ticketprint.core.config import AppConfig, load_config
from ticketprint.core.errors import ConfigLoadError, ConfigValidationError


def _write_config(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))


def test_packaged_defaults_match_dataclass_defaults() -> None:
    loaded = load_config()
    assert loaded.config == AppConfig()
    assert loaded.warnings == ()


def test_user_config_overrides_defaults(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "ticketprint" / "config.yaml",
        """
receipt:
  business_name: "Kagadi Coaches"
bluetooth:
  transport: ble
  connect_timeout_s: 4.5
""",
    )

    loaded = load_config()
    assert loaded.config.receipt.business_name == "Kagadi Coaches"
    assert loaded.config.receipt.currency == "UGX"
    assert loaded.config.bluetooth.transport == "ble"
    assert loaded.config.bluetooth.connect_timeout_s == 4.5
    assert loaded.config.bluetooth.scan_timeout_s == 8.0
    assert any("overrides" in warning for warning in loaded.warnings)


def test_explicit_path(tmp_path: Path) -> None:
    path = tmp_path / "site.yaml"
    _write_config(path, "printer:\n  feed_lines: 5\n")
    assert load_config(path).config.printer.feed_lines == 5


def test_missing_explicit_path_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_config(tmp_path / "missing.yaml")


def test_unknown_transport_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "ticketprint" / "config.yaml", "bluetooth:\n  transport: usb\n")
    with pytest.raises(ConfigValidationError):
        load_config()


def test_unknown_keys_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path / "cfg" / "ticketprint" / "config.yaml", "receipt:\n  logo: x.png\n")
    with pytest.raises(ConfigValidationError):
        load_config()


def test_duplicate_yaml_keys_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "ticketprint" / "config.yaml",
        """
printer:
  feed_lines: 2
  feed_lines: 4
""",
    )
    with pytest.raises(ConfigValidationError):
        load_config()
