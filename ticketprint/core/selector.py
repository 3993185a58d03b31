"""Operator-facing device list with a printers-only filter."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Protocol

from ticketprint.core.device_match import best_device_for_hint, printers_only
from ticketprint.core.errors import DeviceSelectionError, SelectionCancelledError
from ticketprint.core.model import Device


class SelectorState(str, Enum):
    SCANNING = "scanning"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


class DeviceSelector:
    def __init__(self, *, printers_only: bool = False) -> None:
        self.printers_only = printers_only
        self.devices: list[Device] = []
        self.error: str | None = None
        self._scanning = False

    def begin_scan(self) -> None:
        self._scanning = True
        self.error = None

    def set_devices(self, devices: Iterable[Device]) -> None:
        self.devices = list(devices)
        self._scanning = False
        self.error = None

    def set_error(self, message: str) -> None:
        self.error = message
        self._scanning = False

    def toggle_printers_only(self) -> list[Device]:
        self.printers_only = not self.printers_only
        return self.visible_devices

    @property
    def visible_devices(self) -> list[Device]:
        if self.printers_only:
            return printers_only(self.devices)
        return list(self.devices)

    @property
    def state(self) -> SelectorState:
        if self._scanning:
            return SelectorState.SCANNING
        if self.error is not None:
            return SelectorState.ERROR
        if not self.visible_devices:
            return SelectorState.EMPTY
        return SelectorState.READY

    def resolve(self, selection: Device | str | None) -> Device:
        """Map the operator's pick (device, address, or None for cancel) to a listed device."""
        if selection is None:
            raise SelectionCancelledError("Device selection cancelled")
        address = selection.address if isinstance(selection, Device) else selection.strip().upper()
        for device in self.visible_devices:
            if device.address == address:
                return device
        raise DeviceSelectionError(f"Device '{address}' is not in the current device list")


class Chooser(Protocol):
    async def choose(self, selector: DeviceSelector) -> Device | str | None:
        """Suspend until the operator picks a device; None means cancelled."""


class HintChooser:
    """Pick the best match for a MAC address or partial name without prompting."""

    def __init__(self, hint: str) -> None:
        self.hint = hint

    async def choose(self, selector: DeviceSelector) -> Device | str | None:
        device = best_device_for_hint(selector.visible_devices, self.hint)
        if device is None:
            raise DeviceSelectionError(f"No device found matching '{self.hint}'")
        return device
