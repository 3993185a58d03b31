"""Bluetooth device discovery: paired listing, active scan, and normalisation."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, Union

from ticketprint.core.errors import AdapterEnableError, BluetoothDisabledError, ScanError
from ticketprint.core.model import UNKNOWN_DEVICE_NAME, Device
from ticketprint.transports.base import BluetoothAdapter

LOGGER = logging.getLogger(__name__)

# Extra wall-clock time granted to the adapter past the requested scan duration.
SCAN_GRACE_S = 2.0


@dataclass(frozen=True)
class DeviceFound:
    device: Device


@dataclass(frozen=True)
class ScanComplete:
    devices: tuple[Device, ...]
    timed_out: bool = False


ScanEvent = Union[DeviceFound, ScanComplete]


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        LOGGER.warning("Dropping unparseable device payload: %r", text)
        return None


def normalize_paired_payload(payload: Any) -> list[dict[str, Any]]:
    """Flatten the adapter's paired-device payload into a list of mappings.

    Accepts None, a JSON string (array or single object), a list of JSON
    strings, a list of mappings, or any mix of those. Entries that do not
    parse into a mapping are logged and dropped.
    """
    if payload is None:
        return []
    if isinstance(payload, (str, bytes)):
        payload = _parse_json(payload.decode() if isinstance(payload, bytes) else payload)
        if payload is None:
            return []
    if isinstance(payload, Mapping):
        payload = [payload]
    if not isinstance(payload, (list, tuple)):
        LOGGER.warning("Ignoring paired-device payload of type %s", type(payload).__name__)
        return []

    records: list[dict[str, Any]] = []
    for entry in payload:
        if isinstance(entry, str):
            entry = _parse_json(entry)
        if isinstance(entry, Mapping):
            records.append(dict(entry))
        elif entry is not None:
            LOGGER.warning("Dropping device entry of type %s", type(entry).__name__)
    return records


def device_from_record(record: Mapping[str, Any], *, paired: bool) -> Device | None:
    address = record.get("address")
    if not isinstance(address, str) or not address.strip():
        return None
    name = record.get("name")
    if not isinstance(name, str) or not name.strip():
        name = UNKNOWN_DEVICE_NAME
    return Device(address=address.strip().upper(), name=name.strip(), paired=paired)


def merge_devices(*groups: Iterable[Device]) -> list[Device]:
    seen: set[str] = set()
    devices: list[Device] = []
    for group in groups:
        for device in group:
            if device.address in seen:
                continue
            seen.add(device.address)
            devices.append(device)
    return devices


class DeviceDiscovery:
    def __init__(self, adapter: BluetoothAdapter, *, scan_timeout_s: float = 8.0) -> None:
        self.adapter = adapter
        self.scan_timeout_s = scan_timeout_s
        self._lock = asyncio.Lock()

    async def _paired(self) -> list[Device]:
        try:
            enabled = await self.adapter.is_enabled()
            if not enabled:
                LOGGER.debug("Bluetooth adapter is off, enabling")
                enabled = await self.adapter.enable()
            if not enabled:
                raise BluetoothDisabledError("Bluetooth is turned off. Enable Bluetooth and retry.")
            payload = await self.adapter.paired_devices()
        except BluetoothDisabledError:
            raise
        except Exception as exc:
            raise AdapterEnableError(f"Failed to enable Bluetooth: {exc}") from exc

        devices = [
            device
            for device in (device_from_record(r, paired=True) for r in normalize_paired_payload(payload))
            if device is not None
        ]
        LOGGER.debug("Paired devices: %s", devices)
        return devices

    async def scan(self) -> AsyncIterator[ScanEvent]:
        """Yield each unique device, paired ones first, then one `ScanComplete`.

        Scan results are held back until the active scan has stopped so the
        wall-clock cutoff only ever applies to adapter calls.
        """
        async with self._lock:
            paired = await self._paired()

            timed_out = False
            found: list[Device] = []
            try:
                async with asyncio.timeout(self.scan_timeout_s + SCAN_GRACE_S):
                    async with aclosing(self.adapter.scan(self.scan_timeout_s)) as records:
                        async for record in records:
                            device = device_from_record(record, paired=bool(record.get("paired")))
                            if device is not None:
                                found.append(device)
            except TimeoutError:
                timed_out = True
                LOGGER.warning("Scan did not finish within %.1fs; using results so far", self.scan_timeout_s)
            except Exception as exc:
                raise ScanError(f"Failed to scan for devices: {exc}") from exc

            devices = merge_devices(paired, found)
            for device in devices:
                yield DeviceFound(device)
            yield ScanComplete(devices=tuple(devices), timed_out=timed_out)

    async def discover(self) -> list[Device]:
        devices: list[Device] = []
        async with aclosing(self.scan()) as events:
            async for event in events:
                if isinstance(event, ScanComplete):
                    devices = list(event.devices)
        LOGGER.debug("Final device list: %s", devices)
        return devices
