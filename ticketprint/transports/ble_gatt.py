"""BLE GATT printer link implementation."""

from __future__ import annotations

import logging

from bleak import BleakClient

from ticketprint.core.errors import TransportConnectError, TransportSendError

LOGGER = logging.getLogger(__name__)

# Write characteristic of the common "18f0" BLE UART service on thermal printers.
DEFAULT_WRITE_CHAR_UUID = "00002af1-0000-1000-8000-00805f9b34fb"


class BLEGATTLink:
    def __init__(
        self,
        client: BleakClient,
        *,
        write_char_uuid: str = DEFAULT_WRITE_CHAR_UUID,
        write_with_response: bool = False,
        chunk_size: int = 180,
    ) -> None:
        self._client = client
        self.write_char_uuid = write_char_uuid
        self.write_with_response = write_with_response
        self.chunk_size = chunk_size

    @classmethod
    async def open(
        cls,
        address: str,
        *,
        write_char_uuid: str = DEFAULT_WRITE_CHAR_UUID,
        write_with_response: bool = False,
        chunk_size: int = 180,
        timeout_s: float = 10.0,
    ) -> BLEGATTLink:
        client = BleakClient(address, timeout=timeout_s)
        try:
            await client.connect()
        except Exception as exc:
            raise TransportConnectError(f"BLE connect failed for {address}: {exc}") from exc
        if not client.is_connected:
            raise TransportConnectError(f"BLE connect failed for {address}")
        LOGGER.debug("BLE link open to %s", address)
        return cls(
            client,
            write_char_uuid=write_char_uuid,
            write_with_response=write_with_response,
            chunk_size=chunk_size,
        )

    async def write(self, data: bytes) -> None:
        try:
            for offset in range(0, len(data), self.chunk_size):
                await self._client.write_gatt_char(
                    self.write_char_uuid,
                    data[offset : offset + self.chunk_size],
                    response=self.write_with_response,
                )
        except Exception as exc:
            raise TransportSendError(f"BLE GATT write failed: {exc}") from exc

    async def close(self) -> None:
        if self._client.is_connected:
            await self._client.disconnect()
