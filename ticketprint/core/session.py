"""Print session: permission, discovery, selection, connection, transmission.

The session is a linear state machine. Every attempt starts at `IDLE` and
ends at `SUCCEEDED` or `FAILED`, except a cancelled selection, which returns
to `IDLE` without an error. Failures are never retried here: a partially
printed ticket cannot be taken back, so a fresh attempt is always the
operator's call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from ticketprint.core.connection import ConnectionHandle, PrinterConnection
from ticketprint.core.discovery import DeviceDiscovery
from ticketprint.core.errors import (
    DeviceSelectionError,
    NoDevicesFoundError,
    PermissionDeniedError,
    PrintFailure,
    SessionBusyError,
    TransmissionFailedError,
)
from ticketprint.core.model import (
    Command,
    Device,
    FailureReason,
    PrintOutcome,
    QRCommand,
    SessionState,
    Ticket,
)
from ticketprint.core.permissions import PermissionGate
from ticketprint.core.receipt import ReceiptFormatter
from ticketprint.core.selector import Chooser, DeviceSelector
from ticketprint.transports.base import PrinterLink, ReceiptPrinter
from ticketprint.transports.escpos_printer import EscposPrinter

LOGGER = logging.getLogger(__name__)

FAILURE_HINTS: dict[FailureReason, str] = {
    FailureReason.PERMISSION_DENIED: "Bluetooth permissions not granted. Allow them in system settings and retry.",
    FailureReason.BLUETOOTH_DISABLED: "Bluetooth is off. Enable Bluetooth and retry.",
    FailureReason.DISCOVERY_FAILED: "Could not search for devices. Please try again.",
    FailureReason.NO_DEVICES_FOUND: "No Bluetooth devices found. Turn the printer on and refresh.",
    FailureReason.SELECTION_CANCELLED: "",
    FailureReason.CONNECTION_FAILED: "Could not connect to the printer. Select it again or power-cycle it.",
    FailureReason.TRANSMISSION_FAILED: (
        "Printing stopped part way. Part of the ticket may already be printed; "
        "check the paper before printing again."
    ),
}

TransitionListener = Callable[[SessionState, SessionState], None]


class PrintSession:
    def __init__(
        self,
        *,
        gate: PermissionGate,
        discovery: DeviceDiscovery,
        connection: PrinterConnection,
        chooser: Chooser,
        formatter: ReceiptFormatter | None = None,
        selector: DeviceSelector | None = None,
        printer_factory: Callable[[PrinterLink], ReceiptPrinter] = EscposPrinter,
        transmit_timeout_s: float = 30.0,
        feed_lines: int = 3,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self.gate = gate
        self.discovery = discovery
        self.connection = connection
        self.chooser = chooser
        self.formatter = formatter or ReceiptFormatter()
        self.selector = selector or DeviceSelector()
        self.printer_factory = printer_factory
        self.transmit_timeout_s = transmit_timeout_s
        self.feed_lines = feed_lines
        self.state = SessionState.IDLE
        self.history: list[SessionState] = [SessionState.IDLE]
        self._listeners: list[TransitionListener] = []
        # Sessions sharing an adapter share this lock.
        self._lock = lock if lock is not None else asyncio.Lock()

    def on_transition(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def _enter(self, state: SessionState) -> None:
        previous, self.state = self.state, state
        self.history.append(state)
        LOGGER.debug("Print session %s -> %s", previous.value, state.value)
        for listener in self._listeners:
            listener(previous, state)

    async def start(self, ticket: Ticket) -> PrintOutcome:
        if self._lock.locked():
            raise SessionBusyError("A print is already in progress")
        async with self._lock:
            self.state = SessionState.IDLE
            self.history = [SessionState.IDLE]
            device: Device | None = None
            try:
                device = await self._select_device()
                commands_sent = await self._print(device, ticket)
            except PrintFailure as exc:
                return self._fail(exc, device)
            except DeviceSelectionError:
                # Unmatched picks have no failure reason; the caller reports them.
                self._enter(SessionState.IDLE)
                raise

            self._enter(SessionState.SUCCEEDED)
            return PrintOutcome(
                state=SessionState.SUCCEEDED,
                device=device,
                commands_sent=commands_sent,
            )

    def _fail(self, exc: PrintFailure, device: Device | None) -> PrintOutcome:
        if exc.reason is FailureReason.SELECTION_CANCELLED:
            LOGGER.info("Device selection cancelled")
            self._enter(SessionState.IDLE)
            return PrintOutcome(state=SessionState.IDLE)

        LOGGER.error("Print failed (%s): %s", exc.reason.value, exc)
        self._enter(SessionState.FAILED)
        return PrintOutcome(
            state=SessionState.FAILED,
            reason=exc.reason,
            device=device,
            commands_sent=getattr(exc, "commands_sent", 0),
            message=f"{FAILURE_HINTS[exc.reason]} ({exc})",
        )

    async def _select_device(self) -> Device:
        self._enter(SessionState.REQUESTING_PERMISSION)
        if not await self.gate.ensure():
            raise PermissionDeniedError("Bluetooth permissions not granted")

        self._enter(SessionState.DISCOVERING)
        self.selector.begin_scan()
        try:
            devices = await self.discovery.discover()
        except PrintFailure as exc:
            self.selector.set_error(str(exc))
            raise
        self.selector.set_devices(devices)
        if not devices:
            raise NoDevicesFoundError("No Bluetooth devices found")

        self._enter(SessionState.AWAITING_SELECTION)
        selection = await self.chooser.choose(self.selector)
        return self.selector.resolve(selection)

    async def _print(self, device: Device, ticket: Ticket) -> int:
        self._enter(SessionState.CONNECTING)
        async with self.connection.open(device) as handle:
            self._enter(SessionState.FORMATTING)
            commands = self.formatter.render(ticket)

            self._enter(SessionState.TRANSMITTING)
            return await self._transmit(handle, commands)

    async def _transmit(self, handle: ConnectionHandle, commands: list[Command]) -> int:
        printer = self.printer_factory(handle.link)
        sent = 0

        async def _send_all() -> None:
            nonlocal sent
            await printer.init()
            for command in commands:
                await printer.set_alignment(command.align)
                if isinstance(command, QRCommand):
                    await printer.print_qr_code(command.payload, command.size_px, command.error_correction)
                else:
                    await printer.print_text(
                        command.text,
                        font=command.font,
                        width_scale=command.width_scale,
                        height_scale=command.height_scale,
                    )
                sent += 1
            await printer.feed(self.feed_lines)

        try:
            await asyncio.wait_for(_send_all(), self.transmit_timeout_s)
        except TimeoutError as exc:
            raise TransmissionFailedError(
                f"Printer stopped responding after {sent} of {len(commands)} commands",
                commands_sent=sent,
            ) from exc
        except Exception as exc:
            raise TransmissionFailedError(
                f"Printing failed after {sent} of {len(commands)} commands: {exc}",
                commands_sent=sent,
            ) from exc
        return sent
