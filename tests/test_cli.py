from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from ticketprint import cli
from ticketprint.core.errors import DeviceSelectionError, PermissionDeniedError
from ticketprint.core.model import Device, FailureReason, PrintOutcome, SessionState
from ticketprint.core.selector import DeviceSelector

PRINTER = Device(address="66:22:B0:11:22:33", name="MTP-II Printer", paired=True)
BUDS = Device(address="11:11:11:11:11:11", name="Galaxy Buds")

TICKET_YAML = """
clientName: Jane Doe
ticketId: ABC123XY
phoneNumber: "0772000000"
from: Kampala
to: Mbarara
amountPaid: 15000
paymentStatus:
  name: Cash
temperature: "36.5"
printedBy: John Staff
numberPlatePrefix: UBX
numberPlatePostfix: 123A
confirmationCode: K7Q2M9XZ
date: "5-3-2025 9:07"
"""


class FakeClient:
    def __init__(self, *, config_path=None) -> None:
        self.load_warnings = ()
        self.chosen = None

    def list_devices(self, *, printers_only: bool = False):
        return [PRINTER] if printers_only else [PRINTER, BUDS]

    def preview(self, ticket) -> str:
        return f"PREVIEW {ticket.ticket_id}\n"

    def print_ticket(self, ticket, chooser, *, printers_only: bool = False):
        selector = DeviceSelector(printers_only=printers_only)
        selector.set_devices([BUDS, PRINTER])
        picked = asyncio.run(chooser.choose(selector))
        if picked is None:
            return PrintOutcome(state=SessionState.IDLE)
        return PrintOutcome(state=SessionState.SUCCEEDED, device=picked, commands_sent=12)


runner = CliRunner()


@pytest.fixture
def ticket_file(tmp_path: Path) -> Path:
    path = tmp_path / "ticket.yaml"
    path.write_text(TICKET_YAML, encoding="utf-8")
    return path


def test_devices_command(monkeypatch):
    monkeypatch.setattr(cli, "Client", FakeClient)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "66:22:B0:11:22:33 MTP-II Printer [printer] [paired]" in result.stdout
    assert "11:11:11:11:11:11 Galaxy Buds" in result.stdout


def test_devices_command_printers_only(monkeypatch):
    monkeypatch.setattr(cli, "Client", FakeClient)
    result = runner.invoke(cli.app, ["devices", "--printers-only"])
    assert result.exit_code == 0
    assert "Galaxy Buds" not in result.stdout


def test_devices_command_empty(monkeypatch):
    class EmptyClient(FakeClient):
        def list_devices(self, *, printers_only: bool = False):
            return []

    monkeypatch.setattr(cli, "Client", EmptyClient)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "No Bluetooth devices found" in result.stdout


def test_devices_command_error_is_clean(monkeypatch):
    class DeniedClient(FakeClient):
        def list_devices(self, *, printers_only: bool = False):
            raise PermissionDeniedError("Bluetooth permissions not granted")

    monkeypatch.setattr(cli, "Client", DeniedClient)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 1
    assert "Error: Bluetooth permissions not granted" in result.stderr
    assert "Traceback" not in result.stderr


def test_preview_command(monkeypatch, ticket_file):
    monkeypatch.setattr(cli, "Client", FakeClient)
    result = runner.invoke(cli.app, ["preview", str(ticket_file)])
    assert result.exit_code == 0
    assert result.stdout == "PREVIEW ABC123XY\n"


def test_preview_rejects_invalid_ticket(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "Client", FakeClient)
    path = tmp_path / "ticket.yaml"
    path.write_text("clientName: Jane Doe\n", encoding="utf-8")
    result = runner.invoke(cli.app, ["preview", str(path)])
    assert result.exit_code == 1
    assert "Error: Schema validation failed" in result.stderr


def test_print_command_with_device_hint(monkeypatch, ticket_file):
    monkeypatch.setattr(cli, "Client", FakeClient)
    result = runner.invoke(cli.app, ["print", str(ticket_file), "--device", "mtp"])
    assert result.exit_code == 0
    assert "Printed ticket ABC123XY on 66:22:B0:11:22:33 (MTP-II Printer)" in result.stdout


def test_print_command_prompts_for_device(monkeypatch, ticket_file):
    monkeypatch.setattr(cli, "Client", FakeClient)
    result = runner.invoke(cli.app, ["print", str(ticket_file)], input="p\n1\n")
    assert result.exit_code == 0
    assert "1) 11:11:11:11:11:11 Galaxy Buds" in result.stdout
    assert "Printed ticket ABC123XY on 66:22:B0:11:22:33" in result.stdout


def test_print_command_cancelled(monkeypatch, ticket_file):
    monkeypatch.setattr(cli, "Client", FakeClient)
    result = runner.invoke(cli.app, ["print", str(ticket_file)], input="\n")
    assert result.exit_code == 0
    assert "Printing cancelled" in result.stdout


def test_print_command_unmatched_hint(monkeypatch, ticket_file):
    class UnmatchedClient(FakeClient):
        def print_ticket(self, ticket, chooser, *, printers_only: bool = False):
            raise DeviceSelectionError("No device found matching 'epson'")

    monkeypatch.setattr(cli, "Client", UnmatchedClient)
    result = runner.invoke(cli.app, ["print", str(ticket_file), "--device", "epson"])
    assert result.exit_code == 1
    assert "Error: No device found matching 'epson'" in result.stderr


def test_print_command_failure(monkeypatch, ticket_file):
    class FailingClient(FakeClient):
        def print_ticket(self, ticket, chooser, *, printers_only: bool = False):
            return PrintOutcome(
                state=SessionState.FAILED,
                reason=FailureReason.CONNECTION_FAILED,
                device=PRINTER,
                message="Could not connect to the printer (Timed out after 10.0s)",
            )

    monkeypatch.setattr(cli, "Client", FailingClient)
    result = runner.invoke(cli.app, ["print", str(ticket_file), "--device", "mtp"])
    assert result.exit_code == 1
    assert "Error: Could not connect to the printer" in result.stderr


def test_load_warning_is_printed(monkeypatch):
    class WarnClient(FakeClient):
        def __init__(self, *, config_path=None) -> None:
            super().__init__(config_path=config_path)
            self.load_warnings = ("User configuration /tmp/x.yaml overrides packaged defaults",)

    monkeypatch.setattr(cli, "Client", WarnClient)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "Warning: User configuration /tmp/x.yaml overrides packaged defaults" in result.stderr


def test_print_command_aborted_prompt_cancels(monkeypatch, ticket_file):
    def aborted_prompt(*args, **kwargs):
        raise typer.Abort()

    monkeypatch.setattr(cli, "Client", FakeClient)
    monkeypatch.setattr(typer, "prompt", aborted_prompt)
    result = runner.invoke(cli.app, ["print", str(ticket_file)])
    assert result.exit_code == 0
    assert "Printing cancelled" in result.stdout
    assert "Aborted" not in result.stdout
