"""Receipt layout: ticket record to an ordered printer command list."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from ticketprint.core.config import ReceiptLayout
from ticketprint.core.model import (
    Alignment,
    Command,
    ErrorCorrection,
    QRCommand,
    TextCommand,
    Ticket,
)

PLACEHOLDER = "N/A"
QR_PREFIX = "TICKET:"


def format_amount(value: int | float | Decimal | str) -> str:
    """Group digits in threes: 125000 -> "125,000".

    Fractional digits are kept as given. Values that are not numbers are
    returned unchanged.
    """
    text = str(value).strip()
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return text
    if not amount.is_finite():
        return text
    if amount == amount.to_integral_value() and "." not in text:
        return f"{int(amount):,}"
    return f"{amount:,}"


def _value(text: str | None) -> str:
    if text is None or not str(text).strip():
        return PLACEHOLDER
    return str(text).strip()


class ReceiptFormatter:
    def __init__(self, layout: ReceiptLayout | None = None) -> None:
        self.layout = layout or ReceiptLayout()

    def separator(self) -> TextCommand:
        return TextCommand("-" * self.layout.line_width + "\n", align=Alignment.CENTER)

    def key_value(self, label: str, value: str | None) -> TextCommand:
        return TextCommand(f"{label:<{self.layout.label_width}}: {_value(value)}\n")

    def render(self, ticket: Ticket) -> list[Command]:
        layout = self.layout
        status = ticket.payment_status.name if ticket.payment_status else None

        commands: list[Command] = [
            TextCommand(
                layout.business_name + "\n\n",
                align=Alignment.CENTER,
                width_scale=2,
                height_scale=2,
            )
        ]
        commands.extend(TextCommand(line + "\n", align=Alignment.CENTER) for line in layout.contact_lines)
        commands.append(
            TextCommand(
                f"{_value(ticket.number_plate_prefix)} {_value(ticket.number_plate_postfix)}\n",
                align=Alignment.CENTER,
                width_scale=2,
            )
        )
        commands.append(self.separator())
        commands.extend(
            self.key_value(label, value)
            for label, value in (
                ("Client Name", ticket.client_name),
                ("Ticket ID", ticket.ticket_id),
                ("Phone No.", ticket.phone_number),
                ("Temperature", ticket.temperature),
                ("From", ticket.from_location),
                ("To", ticket.to_location),
                ("Status", status),
                ("Printed by", ticket.printed_by),
                ("Travel Date", ticket.date),
            )
        )
        commands.append(self.separator())
        commands.append(TextCommand(f"Code: {_value(ticket.confirmation_code)}\n", align=Alignment.CENTER))
        commands.append(
            TextCommand(
                f"Paid: {layout.currency} {format_amount(_value(ticket.amount_paid))}\n",
                align=Alignment.CENTER,
                height_scale=2,
            )
        )
        commands.append(TextCommand(layout.terms_notice + "\n", align=Alignment.CENTER))
        commands.append(TextCommand(layout.terms_url + "\n", align=Alignment.CENTER))
        commands.append(TextCommand(layout.thank_you + "\n", align=Alignment.CENTER))
        commands.append(
            QRCommand(
                payload=QR_PREFIX + ticket.ticket_id,
                size_px=layout.qr_size_px,
                error_correction=ErrorCorrection.L,
            )
        )
        return commands


def render_text(commands: Iterable[Command], line_width: int = 32) -> str:
    """Approximate the printed receipt as plain text for on-screen preview."""
    lines: list[str] = []
    for command in commands:
        if isinstance(command, QRCommand):
            lines.append(_align(f"[QR {command.payload}]", command.align, line_width))
            continue
        for line in command.text.removesuffix("\n").split("\n"):
            lines.append(_align(line, command.align, line_width))
    return "\n".join(lines) + "\n"


def _align(line: str, align: Alignment, width: int) -> str:
    if align is Alignment.CENTER:
        return line.center(width).rstrip()
    if align is Alignment.RIGHT:
        return line.rjust(width)
    return line
