"""Ticket record loading, validation, and identifier generation."""

from __future__ import annotations

import secrets
import string
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from ticketprint.core.config import read_yaml, validate_document
from ticketprint.core.errors import TicketValidationError
from ticketprint.core.model import Ticket

TICKET_ID_PREFIX = "TKT-"
_ALPHABET = string.ascii_uppercase + string.digits


def _random_token(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def new_ticket_id() -> str:
    return TICKET_ID_PREFIX + _random_token(6)


def new_confirmation_code() -> str:
    return _random_token(8)


def format_timestamp(moment: datetime) -> str:
    return f"{moment.day}-{moment.month}-{moment.year} {moment.hour}:{moment.minute:02d}"


def ticket_from_record(
    record: dict[str, Any],
    *,
    source: str = "<ticket>",
    clock: Callable[[], datetime] = datetime.now,
) -> Ticket:
    """Validate a form record and fill in the generated fields it lacks."""
    try:
        validate_document(record, "ticket.schema.json", source=source, error_cls=TicketValidationError)
        completed = dict(record)
        completed.setdefault("ticketId", new_ticket_id())
        completed.setdefault("confirmationCode", new_confirmation_code())
        completed.setdefault("date", format_timestamp(clock()))
        return Ticket.from_mapping(completed)
    except ValueError as exc:
        # Integers past the int/str conversion digit limit.
        raise TicketValidationError(f"Invalid ticket record {source}: {exc}") from exc


def load_ticket(path: Path, *, clock: Callable[[], datetime] = datetime.now) -> Ticket:
    # YAML is a superset of JSON, so both file flavours go through the same loader.
    record = read_yaml(path, error_cls=TicketValidationError)
    return ticket_from_record(record, source=str(path), clock=clock)
