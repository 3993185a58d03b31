from __future__ import annotations

import asyncio
import subprocess
from types import SimpleNamespace

import pytest

from ticketprint.core.errors import TransportError
from ticketprint.transports import bluez
from ticketprint.transports.bluez import BlueZAdapter, parse_device_lines


def _cp(cmd: list[str], rc: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(cmd, rc, stdout=stdout, stderr=stderr)


def test_parse_device_lines() -> None:
    output = (
        "Device 66:22:b0:11:22:33 MTP-II Printer\n"
        "[CHG] Controller 00:1A:7D:DA:71:13 Discovering: yes\n"
        "Device 11:11:11:11:11:11\n"
    )
    records = parse_device_lines(output, paired=True)
    assert records == [
        {"address": "66:22:B0:11:22:33", "name": "MTP-II Printer", "paired": True},
        {"address": "11:11:11:11:11:11", "name": None, "paired": True},
    ]


def test_power_state(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(cmd, check, capture_output, text):
        if cmd[1:] == ["show"]:
            return _cp(cmd, 0, stdout="Controller 00:1A:7D:DA:71:13\n\tPowered: no\n")
        if cmd[1:] == ["power", "on"]:
            return _cp(cmd, 0, stdout="Changing power on succeeded\n")
        raise AssertionError(f"Unexpected cmd: {cmd}")

    monkeypatch.setattr(subprocess, "run", fake_run)

    adapter = BlueZAdapter()
    assert asyncio.run(adapter.is_enabled()) is False
    assert asyncio.run(adapter.enable()) is True


def test_paired_devices_falls_back_to_legacy_command(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(cmd, check, capture_output, text):
        if cmd[1:] == ["devices", "Paired"]:
            return _cp(cmd, 1, stderr="Invalid command")
        if cmd[1:] == ["paired-devices"]:
            return _cp(cmd, 0, stdout="Device 66:22:B0:11:22:33 MTP-II Printer\n")
        raise AssertionError(f"Unexpected cmd: {cmd}")

    monkeypatch.setattr(subprocess, "run", fake_run)

    records = asyncio.run(BlueZAdapter().paired_devices())
    assert [r["address"] for r in records] == ["66:22:B0:11:22:33"]


def test_paired_devices_raises_when_all_commands_fail(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(cmd, check, capture_output, text):
        return _cp(cmd, 1, stderr="org.bluez.Error.NotReady")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(TransportError, match="NotReady"):
        asyncio.run(BlueZAdapter().paired_devices())


def test_missing_bluetoothctl_is_transport_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(cmd, check, capture_output, text):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(TransportError, match="bluetoothctl not found"):
        asyncio.run(BlueZAdapter().is_enabled())


class FakeScanner:
    instances: list[FakeScanner] = []

    def __init__(self, detection_callback=None, **kwargs) -> None:
        self.callback = detection_callback
        self.kwargs = kwargs
        self.stopped = False
        FakeScanner.instances.append(self)

    async def start(self) -> None:
        self.callback(
            SimpleNamespace(address="66:22:B0:11:22:44", name="MTP-III"),
            SimpleNamespace(local_name=None),
        )

    async def stop(self) -> None:
        self.stopped = True


def test_scan_covers_classic_printers(monkeypatch: pytest.MonkeyPatch) -> None:
    FakeScanner.instances = []

    def fake_run(cmd, check, capture_output, text):
        return _cp(cmd, 0, stdout="Device 66:22:B0:11:22:33 MTP-II Printer\n")

    monkeypatch.setattr(bluez, "BleakScanner", FakeScanner)
    monkeypatch.setattr(subprocess, "run", fake_run)

    async def _collect():
        return [record async for record in BlueZAdapter().scan(0.05)]

    records = asyncio.run(_collect())

    scanner = FakeScanner.instances[0]
    assert scanner.kwargs["bluez"]["filters"]["Transport"] == "auto"
    assert scanner.stopped is True
    assert records == [
        {"address": "66:22:B0:11:22:44", "name": "MTP-III", "paired": False},
        {"address": "66:22:B0:11:22:33", "name": "MTP-II Printer", "paired": True},
    ]
