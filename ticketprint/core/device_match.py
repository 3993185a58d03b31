"""Device classification and hint matching."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ticketprint.core.model import Device

PRINTER_KEYWORDS = ("printer", "pos", "thermal", "receipt", "escpos")


def is_printer_name(name: str | None) -> bool:
    # Substring heuristic; "My POS Phone" is a known false positive.
    if not name:
        return False
    lower_name = name.lower()
    return any(keyword in lower_name for keyword in PRINTER_KEYWORDS)


def printers_only(devices: Iterable[Device]) -> list[Device]:
    return [device for device in devices if device.is_printer]


def match_score(device: Device, hint: str) -> int:
    lower_hint = hint.strip().lower()
    if not lower_hint:
        return 0
    address = device.address.lower()
    if address == lower_hint:
        return 3
    if lower_hint in address:
        return 2
    if lower_hint in device.name.lower():
        return 1
    return 0


def best_device_for_hint(devices: Iterable[Device], hint: str) -> Device | None:
    best: Device | None = None
    best_score = 0
    for device in devices:
        score = match_score(device, hint)
        if score > best_score:
            best = device
            best_score = score
    return best
