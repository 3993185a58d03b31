"""RFCOMM (serial port profile) printer link using Python sockets."""

from __future__ import annotations

import asyncio
import logging
import socket

from ticketprint.core.errors import (
    TransportConnectError,
    TransportSendError,
    TransportTimeoutError,
)

LOGGER = logging.getLogger(__name__)


class RFCOMMLink:
    def __init__(self, bt_socket: socket.socket, address: str) -> None:
        self._socket: socket.socket | None = bt_socket
        self.address = address

    @classmethod
    async def open(cls, address: str, *, channel: int = 1, timeout_s: float = 10.0) -> RFCOMMLink:
        bt_socket = await asyncio.to_thread(_open_socket, address, channel, timeout_s)
        LOGGER.debug("RFCOMM link open to %s on channel %d", address, channel)
        return cls(bt_socket, address)

    async def write(self, data: bytes) -> None:
        if self._socket is None:
            raise TransportSendError(f"RFCOMM link to {self.address} is closed")
        try:
            await asyncio.to_thread(self._socket.sendall, data)
        except TimeoutError as exc:
            raise TransportTimeoutError(f"RFCOMM send timed out for {self.address}") from exc
        except OSError as exc:
            raise TransportSendError(f"RFCOMM send failed: {exc}") from exc

    async def close(self) -> None:
        if self._socket is None:
            return
        bt_socket, self._socket = self._socket, None
        bt_socket.close()


def _open_socket(address: str, channel: int, timeout_s: float) -> socket.socket:
    try:
        af_bluetooth = socket.AF_BLUETOOTH
        btproto_rfcomm = socket.BTPROTO_RFCOMM
    except AttributeError as exc:
        raise TransportConnectError(
            "This Python build does not expose Bluetooth socket APIs (AF_BLUETOOTH/BTPROTO_RFCOMM)."
        ) from exc

    try:
        bt_socket = socket.socket(af_bluetooth, socket.SOCK_STREAM, btproto_rfcomm)
    except OSError as exc:
        raise TransportConnectError(f"Could not create RFCOMM socket: {exc}") from exc
    bt_socket.settimeout(timeout_s)
    try:
        bt_socket.connect((address, channel))
    except TimeoutError as exc:
        bt_socket.close()
        raise TransportTimeoutError(
            f"RFCOMM connect timed out for {address} on channel {channel}"
        ) from exc
    except OSError as exc:
        bt_socket.close()
        raise TransportConnectError(
            f"RFCOMM connect failed for {address} on channel {channel}: {exc}"
        ) from exc
    return bt_socket
