"""Printer connection lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from ticketprint.core.errors import ConnectionFailedError
from ticketprint.core.model import Device
from ticketprint.transports.base import BluetoothAdapter, PrinterLink

LOGGER = logging.getLogger(__name__)


@dataclass
class ConnectionHandle:
    device: Device
    link: PrinterLink
    closed: bool = False


class PrinterConnection:
    def __init__(self, adapter: BluetoothAdapter, *, connect_timeout_s: float = 10.0) -> None:
        self.adapter = adapter
        self.connect_timeout_s = connect_timeout_s

    async def connect(self, device: Device) -> ConnectionHandle:
        LOGGER.debug("Connecting to %s (%s)", device.address, device.name)
        try:
            link = await asyncio.wait_for(self.adapter.connect(device.address), self.connect_timeout_s)
        except TimeoutError as exc:
            raise ConnectionFailedError(
                f"Timed out after {self.connect_timeout_s:.0f}s connecting to {device.address}"
            ) from exc
        except Exception as exc:
            raise ConnectionFailedError(f"Failed to connect to {device.address}: {exc}") from exc
        if not link:
            raise ConnectionFailedError(f"Failed to connect to printer {device.address}")
        return ConnectionHandle(device=device, link=link)

    async def disconnect(self, handle: ConnectionHandle) -> None:
        if handle.closed:
            return
        handle.closed = True
        try:
            await self.adapter.disconnect(handle.link)
        except Exception as exc:
            LOGGER.warning("Error closing connection to %s: %s", handle.device.address, exc)

    @asynccontextmanager
    async def open(self, device: Device) -> AsyncIterator[ConnectionHandle]:
        handle = await self.connect(device)
        try:
            yield handle
        finally:
            await self.disconnect(handle)
