"""Transport interfaces."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

from ticketprint.core.model import Alignment, ErrorCorrection


class PrinterLink(Protocol):
    async def write(self, data: bytes) -> None:
        """Send raw bytes to the printer."""

    async def close(self) -> None:
        """Release the underlying connection."""


class BluetoothAdapter(Protocol):
    async def is_enabled(self) -> bool: ...

    async def enable(self) -> bool: ...

    async def paired_devices(self) -> Any:
        """Return bonded devices as a JSON string, a list of JSON strings, or a list of mappings."""

    def scan(self, duration_s: float) -> AsyncIterator[Mapping[str, Any]]:
        """Yield raw `{address, name, paired}` records for at most `duration_s` seconds."""

    async def connect(self, address: str) -> PrinterLink | None: ...

    async def disconnect(self, link: PrinterLink) -> None: ...


class ReceiptPrinter(Protocol):
    async def init(self) -> None: ...

    async def set_alignment(self, align: Alignment) -> None: ...

    async def print_text(
        self,
        text: str,
        *,
        font: str = "a",
        width_scale: int = 1,
        height_scale: int = 1,
    ) -> None: ...

    async def print_qr_code(
        self,
        payload: str,
        size_px: int,
        error_correction: ErrorCorrection,
    ) -> None: ...

    async def feed(self, lines: int) -> None: ...
