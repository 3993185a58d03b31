"""Stable public API for building tooling on top of ticketprint.

This module is the supported integration surface for third-party callers
(GUI/TUI frontends, scripts). Avoid importing from internal modules unless
intentionally depending on non-stable internals.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from ticketprint.core.config import AppConfig, load_config
from ticketprint.core.connection import PrinterConnection
from ticketprint.core.discovery import DeviceDiscovery
from ticketprint.core.errors import (
    AdapterEnableError,
    BluetoothDisabledError,
    ConfigError,
    ConnectionFailedError,
    DeviceDiscoveryError,
    DeviceSelectionError,
    NoDevicesFoundError,
    PermissionDeniedError,
    PrintFailure,
    ScanError,
    SelectionCancelledError,
    SessionBusyError,
    TicketprintError,
    TicketValidationError,
    TransmissionFailedError,
)
from ticketprint.core.model import (
    Command,
    Device,
    FailureReason,
    PrintOutcome,
    SessionState,
    Ticket,
)
from ticketprint.core.permissions import PermissionBackend, PermissionGate
from ticketprint.core.receipt import ReceiptFormatter, format_amount, render_text
from ticketprint.core.selector import Chooser, DeviceSelector, HintChooser
from ticketprint.core.session import PrintSession, TransitionListener
from ticketprint.core.ticket import load_ticket
from ticketprint.transports.base import BluetoothAdapter
from ticketprint.transports.bluez import BlueZAdapter

__all__ = [
    "TicketprintError",
    "ConfigError",
    "TicketValidationError",
    "PrintFailure",
    "PermissionDeniedError",
    "BluetoothDisabledError",
    "DeviceDiscoveryError",
    "AdapterEnableError",
    "ScanError",
    "NoDevicesFoundError",
    "SelectionCancelledError",
    "ConnectionFailedError",
    "TransmissionFailedError",
    "DeviceSelectionError",
    "SessionBusyError",
    "Command",
    "Device",
    "FailureReason",
    "PrintOutcome",
    "SessionState",
    "Ticket",
    "Chooser",
    "HintChooser",
    "format_amount",
    "load_ticket",
    "Client",
]


class Client:
    """Public client wrapping configuration, discovery, and printing.

    Components that hold asyncio primitives are built per call, so each
    synchronous method runs in its own event loop. Every scan and print session
    started through a client holds the adapter lock; a second one raises
    `SessionBusyError` rather than waiting.
    """

    def __init__(
        self,
        *,
        adapter: BluetoothAdapter | None = None,
        permission_backend: PermissionBackend | None = None,
        config: AppConfig | None = None,
        config_path: Path | None = None,
    ) -> None:
        if config is None:
            loaded = load_config(config_path)
            config = loaded.config
            self.load_warnings = loaded.warnings
        else:
            self.load_warnings = ()
        self.config = config
        self.adapter = adapter or BlueZAdapter(config.bluetooth)
        self.permission_backend = permission_backend
        self.formatter = ReceiptFormatter(config.receipt)
        self._adapter_lock = asyncio.Lock()

    def _discovery(self) -> DeviceDiscovery:
        return DeviceDiscovery(self.adapter, scan_timeout_s=self.config.bluetooth.scan_timeout_s)

    def list_devices(self, *, printers_only: bool = False) -> list[Device]:
        async def _run() -> list[Device]:
            if not await PermissionGate(self.permission_backend).ensure():
                raise PermissionDeniedError("Bluetooth permissions not granted")
            if self._adapter_lock.locked():
                raise SessionBusyError("The Bluetooth adapter is busy")
            async with self._adapter_lock:
                return await self._discovery().discover()

        selector = DeviceSelector(printers_only=printers_only)
        selector.set_devices(asyncio.run(_run()))
        return selector.visible_devices

    def render(self, ticket: Ticket) -> list[Command]:
        return self.formatter.render(ticket)

    def preview(self, ticket: Ticket) -> str:
        return render_text(self.render(ticket), self.config.receipt.line_width)

    def session(self, chooser: Chooser, *, printers_only: bool = False) -> PrintSession:
        bluetooth = self.config.bluetooth
        return PrintSession(
            gate=PermissionGate(self.permission_backend),
            discovery=self._discovery(),
            connection=PrinterConnection(self.adapter, connect_timeout_s=bluetooth.connect_timeout_s),
            chooser=chooser,
            formatter=self.formatter,
            selector=DeviceSelector(printers_only=printers_only),
            transmit_timeout_s=bluetooth.transmit_timeout_s,
            feed_lines=self.config.printer.feed_lines,
            lock=self._adapter_lock,
        )

    def print_ticket(
        self,
        ticket: Ticket,
        chooser: Chooser,
        *,
        printers_only: bool = False,
        on_transition: TransitionListener | None = None,
    ) -> PrintOutcome:
        session = self.session(chooser, printers_only=printers_only)
        if on_transition is not None:
            session.on_transition(on_transition)
        return asyncio.run(session.start(ticket))
