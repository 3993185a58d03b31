"""Runtime permission negotiation for Bluetooth scanning and connecting."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Protocol

LOGGER = logging.getLogger(__name__)

ACCESS_FINE_LOCATION = "android.permission.ACCESS_FINE_LOCATION"
ACCESS_COARSE_LOCATION = "android.permission.ACCESS_COARSE_LOCATION"
BLUETOOTH_SCAN = "android.permission.BLUETOOTH_SCAN"
BLUETOOTH_CONNECT = "android.permission.BLUETOOTH_CONNECT"

# First API level where scanning/connecting needs explicit Bluetooth permissions.
BLUETOOTH_RUNTIME_API_LEVEL = 31

GRANTED = "granted"


class PermissionBackend(Protocol):
    api_level: int

    async def check(self, permission: str) -> bool: ...

    async def request(self, permissions: Sequence[str]) -> Mapping[str, str]: ...


def required_permissions(api_level: int) -> tuple[str, ...]:
    if api_level >= BLUETOOTH_RUNTIME_API_LEVEL:
        return (BLUETOOTH_SCAN, BLUETOOTH_CONNECT)
    return (ACCESS_FINE_LOCATION, ACCESS_COARSE_LOCATION)


class PermissionGate:
    """Resolve, check, and request the platform's Bluetooth permission set.

    A gate without a backend models a platform with no runtime permission
    model and always reports granted. Nothing is cached between calls since
    the OS may revoke a grant between print attempts.
    """

    def __init__(self, backend: PermissionBackend | None = None) -> None:
        self.backend = backend

    async def ensure(self) -> bool:
        if self.backend is None:
            return True

        required = required_permissions(self.backend.api_level)
        try:
            missing = [perm for perm in required if not await self.backend.check(perm)]
            if not missing:
                LOGGER.debug("Bluetooth permissions already granted")
                return True

            LOGGER.debug("Requesting permissions: %s", ", ".join(missing))
            results = await self.backend.request(missing)
        except Exception as exc:
            LOGGER.warning("Error requesting Bluetooth permissions: %s", exc)
            return False

        denied = [perm for perm in missing if results.get(perm) != GRANTED]
        if denied:
            LOGGER.warning("Bluetooth permissions denied: %s", ", ".join(denied))
            return False
        return True
