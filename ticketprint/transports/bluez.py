"""BlueZ adapter: bluetoothctl for power and bonding, bleak for active scans."""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from ticketprint.core.config import BluetoothSettings
from ticketprint.core.errors import TransportError
from ticketprint.transports.base import PrinterLink
from ticketprint.transports.ble_gatt import BLEGATTLink
from ticketprint.transports.rfcomm import RFCOMMLink

LOGGER = logging.getLogger(__name__)

_DEVICE_LINE_RE = re.compile(r"^Device\s+([0-9A-F:]{17})\s*(.*)$", re.IGNORECASE)
_POWERED_RE = re.compile(r"^\s*Powered:\s*(yes|no)\s*$", re.IGNORECASE | re.MULTILINE)

# Classic (BR/EDR) and LE discovery; bleak's BlueZ default is LE only.
_DISCOVERY_FILTERS = {"Transport": "auto"}


class BlueZAdapter:
    def __init__(self, settings: BluetoothSettings | None = None) -> None:
        self.settings = settings or BluetoothSettings()

    async def is_enabled(self) -> bool:
        result = await _bluetoothctl("show")
        match = _POWERED_RE.search(result.stdout)
        return bool(match) and match.group(1).lower() == "yes"

    async def enable(self) -> bool:
        result = await _bluetoothctl("power", "on")
        return result.returncode == 0 and "succeeded" in result.stdout.lower()

    async def paired_devices(self) -> list[dict[str, Any]]:
        result = await _bluetoothctl("devices", "Paired")
        if result.returncode != 0 or not result.stdout.strip():
            # Older BlueZ releases only know the dedicated subcommand.
            result = await _bluetoothctl("paired-devices")
        if result.returncode != 0:
            raise TransportError(f"bluetoothctl failed: {(result.stderr or '').strip()}")
        return parse_device_lines(result.stdout, paired=True)

    async def scan(self, duration_s: float) -> AsyncIterator[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

        def _on_detect(device: BLEDevice, advertisement: AdvertisementData) -> None:
            queue.put_nowait(
                {
                    "address": device.address,
                    "name": device.name or advertisement.local_name,
                    "paired": False,
                }
            )

        scanner = BleakScanner(
            detection_callback=_on_detect,
            bluez={"filters": dict(_DISCOVERY_FILTERS)},
        )
        await scanner.start()
        try:
            deadline = time.monotonic() + duration_s
            while (remaining := deadline - time.monotonic()) > 0:
                try:
                    yield await asyncio.wait_for(queue.get(), remaining)
                except TimeoutError:
                    break
        finally:
            await scanner.stop()

        # Bonded devices that were in range during the scan.
        for record in await self.paired_devices():
            yield record

    async def connect(self, address: str) -> PrinterLink | None:
        settings = self.settings
        if settings.transport == "ble":
            return await BLEGATTLink.open(
                address,
                write_char_uuid=settings.ble_write_char_uuid,
                write_with_response=settings.ble_write_with_response,
                chunk_size=settings.ble_chunk_size,
                timeout_s=settings.connect_timeout_s,
            )
        return await RFCOMMLink.open(
            address,
            channel=settings.rfcomm_channel,
            timeout_s=settings.connect_timeout_s,
        )

    async def disconnect(self, link: PrinterLink) -> None:
        await link.close()


def parse_device_lines(output: str, *, paired: bool) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for line in output.splitlines():
        match = _DEVICE_LINE_RE.match(line.strip())
        if not match:
            continue
        mac, name = match.group(1).upper(), match.group(2).strip()
        records.append({"address": mac, "name": name or None, "paired": paired})
    return records


async def _bluetoothctl(*args: str) -> subprocess.CompletedProcess[str]:
    cmd = ["bluetoothctl", *args]
    LOGGER.debug("Running %s", " ".join(cmd))
    return await asyncio.to_thread(_run_command, cmd)


def _run_command(cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(
            cmd,
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise TransportError(f"{cmd[0]} not found; BlueZ tools are required") from exc
