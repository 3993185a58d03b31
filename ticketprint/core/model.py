"""Core data models shared by discovery, formatting, session, and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ticketprint.core.device_match import is_printer_name

UNKNOWN_DEVICE_NAME = "Unknown Device"


@dataclass(frozen=True)
class Device:
    address: str
    name: str = UNKNOWN_DEVICE_NAME
    paired: bool = False

    @property
    def is_printer(self) -> bool:
        return is_printer_name(self.name)


@dataclass(frozen=True)
class PaymentStatus:
    name: str | None = None


@dataclass(frozen=True)
class Ticket:
    client_name: str
    ticket_id: str
    phone_number: str
    from_location: str
    to_location: str
    amount_paid: str
    payment_status: PaymentStatus | None
    temperature: str
    printed_by: str
    number_plate_prefix: str
    number_plate_postfix: str
    confirmation_code: str
    date: str

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Ticket:
        """Build a ticket from a document-store style camelCase record.

        Place fields (`from`, `to`) may be plain strings or `{name: ...}`
        objects. Absent values become empty strings; the formatter decides
        how to render them.
        """
        status = data.get("paymentStatus")
        if isinstance(status, dict):
            payment_status: PaymentStatus | None = PaymentStatus(name=status.get("name"))
        elif isinstance(status, str):
            payment_status = PaymentStatus(name=status)
        else:
            payment_status = None

        return cls(
            client_name=_text(data.get("clientName")),
            ticket_id=_text(data.get("ticketId")),
            phone_number=_text(data.get("phoneNumber")),
            from_location=_place(data.get("from")),
            to_location=_place(data.get("to")),
            amount_paid=_text(data.get("amountPaid")),
            payment_status=payment_status,
            temperature=_text(data.get("temperature")),
            printed_by=_text(data.get("printedBy")),
            number_plate_prefix=_text(data.get("numberPlatePrefix")),
            number_plate_postfix=_text(data.get("numberPlatePostfix")),
            confirmation_code=_text(data.get("confirmationCode")),
            date=_text(data.get("date")),
        )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _place(value: Any) -> str:
    if isinstance(value, dict):
        return _text(value.get("name"))
    return _text(value)


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class ErrorCorrection(str, Enum):
    L = "L"
    M = "M"
    Q = "Q"
    H = "H"


@dataclass(frozen=True)
class TextCommand:
    text: str
    align: Alignment = Alignment.LEFT
    font: str = "a"
    width_scale: int = 1
    height_scale: int = 1


@dataclass(frozen=True)
class QRCommand:
    payload: str
    size_px: int
    error_correction: ErrorCorrection = ErrorCorrection.L
    align: Alignment = Alignment.CENTER


Command = Union[TextCommand, QRCommand]


class SessionState(str, Enum):
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    DISCOVERING = "discovering"
    AWAITING_SELECTION = "awaiting_selection"
    CONNECTING = "connecting"
    FORMATTING = "formatting"
    TRANSMITTING = "transmitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    BLUETOOTH_DISABLED = "bluetooth_disabled"
    DISCOVERY_FAILED = "discovery_failed"
    NO_DEVICES_FOUND = "no_devices_found"
    SELECTION_CANCELLED = "selection_cancelled"
    CONNECTION_FAILED = "connection_failed"
    TRANSMISSION_FAILED = "transmission_failed"


@dataclass(frozen=True)
class PrintOutcome:
    state: SessionState
    reason: FailureReason | None = None
    device: Device | None = None
    commands_sent: int = 0
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is SessionState.SUCCEEDED
