"""ESC/POS command emission over a printer link.

Each call is rendered into bytes with python-escpos' `Dummy` printer and
written to the link straight away, so a failing call leaves every earlier
command already on the wire.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from escpos.constants import QR_ECLEVEL_H, QR_ECLEVEL_L, QR_ECLEVEL_M, QR_ECLEVEL_Q
from escpos.printer import Dummy

from ticketprint.core.model import Alignment, ErrorCorrection
from ticketprint.transports.base import PrinterLink

LOGGER = logging.getLogger(__name__)

_EC_LEVELS = {
    ErrorCorrection.L: QR_ECLEVEL_L,
    ErrorCorrection.M: QR_ECLEVEL_M,
    ErrorCorrection.Q: QR_ECLEVEL_Q,
    ErrorCorrection.H: QR_ECLEVEL_H,
}

# Dots per QR module at 203 dpi; 200 px renders at module size 8.
QR_PX_PER_MODULE = 25


def qr_module_size(size_px: int) -> int:
    return max(1, min(16, size_px // QR_PX_PER_MODULE))


class EscposPrinter:
    def __init__(self, link: PrinterLink) -> None:
        self.link = link

    async def _emit(self, build: Callable[[Dummy], None]) -> None:
        dummy = Dummy()
        build(dummy)
        data = dummy.output
        LOGGER.debug("Writing %d bytes", len(data))
        await self.link.write(data)

    async def init(self) -> None:
        await self._emit(lambda p: p.hw("INIT"))

    async def set_alignment(self, align: Alignment) -> None:
        await self._emit(lambda p: p.set(align=align.value))

    async def print_text(
        self,
        text: str,
        *,
        font: str = "a",
        width_scale: int = 1,
        height_scale: int = 1,
    ) -> None:
        def build(p: Dummy) -> None:
            p.set(font=font, custom_size=True, width=width_scale, height=height_scale)
            p.text(text)

        await self._emit(build)

    async def print_qr_code(
        self,
        payload: str,
        size_px: int,
        error_correction: ErrorCorrection = ErrorCorrection.L,
    ) -> None:
        await self._emit(
            lambda p: p.qr(
                payload,
                ec=_EC_LEVELS[error_correction],
                size=qr_module_size(size_px),
                native=True,
            )
        )

    async def feed(self, lines: int) -> None:
        if lines > 0:
            await self._emit(lambda p: p.print_and_feed(min(lines, 255)))
