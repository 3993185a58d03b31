"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from ticketprint.api import Client
from ticketprint.core.errors import TicketprintError
from ticketprint.core.model import Device, SessionState
from ticketprint.core.selector import DeviceSelector, HintChooser, SelectorState
from ticketprint.core.ticket import load_ticket

app = typer.Typer(help="Print bus tickets on Bluetooth ESC/POS receipt printers")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    config: Path | None = typer.Option(None, "--config", help="Configuration YAML file"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {"config": config}


def _build_client(ctx: typer.Context) -> Client:
    client = Client(config_path=(ctx.obj or {}).get("config"))
    for warning in getattr(client, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return client


def _describe(device: Device) -> str:
    tags = []
    if device.is_printer:
        tags.append("[printer]")
    if device.paired:
        tags.append("[paired]")
    return " ".join([device.address, device.name, *tags])


class PromptChooser:
    """Numbered terminal picker; blank answer cancels, 'p' toggles printers only."""

    async def choose(self, selector: DeviceSelector) -> Device | str | None:
        while True:
            devices = selector.visible_devices
            if selector.state is SelectorState.EMPTY:
                typer.echo("No printers in the device list.")
            for index, device in enumerate(devices, start=1):
                typer.echo(f"{index}) {_describe(device)}")
            try:
                answer = typer.prompt(
                    "Select device number (p: toggle printers only, blank: cancel)",
                    default="",
                    show_default=False,
                ).strip()
            except typer.Abort:
                # Ctrl-C / Ctrl-D at the prompt cancels like a blank answer.
                typer.echo()
                return None
            if not answer:
                return None
            if answer.lower() == "p":
                selector.toggle_printers_only()
                continue
            if answer.isdigit() and 1 <= int(answer) <= len(devices):
                return devices[int(answer) - 1]
            typer.echo(f"Invalid choice '{answer}'", err=True)


@app.command("devices")
def list_devices(
    ctx: typer.Context,
    printers_only: bool = typer.Option(False, "--printers-only", help="Show likely printers only"),
) -> None:
    """Scan for Bluetooth devices and list them."""
    try:
        client = _build_client(ctx)
        devices = client.list_devices(printers_only=printers_only)
        if not devices:
            typer.echo("No Bluetooth devices found")
            return
        for device in devices:
            typer.echo(_describe(device))
    except TicketprintError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("preview")
def preview(ctx: typer.Context, ticket_file: Path) -> None:
    """Show the receipt as it will be printed."""
    try:
        client = _build_client(ctx)
        ticket = load_ticket(ticket_file)
        typer.echo(client.preview(ticket), nl=False)
    except TicketprintError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("print")
def print_ticket(
    ctx: typer.Context,
    ticket_file: Path,
    device: str | None = typer.Option(None, "--device", help="MAC or partial name"),
    printers_only: bool = typer.Option(False, "--printers-only", help="Offer likely printers only"),
) -> None:
    """Print a ticket on a Bluetooth receipt printer."""
    try:
        client = _build_client(ctx)
        ticket = load_ticket(ticket_file)
        chooser = HintChooser(device) if device else PromptChooser()
        outcome = client.print_ticket(ticket, chooser, printers_only=printers_only)
    except TicketprintError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if outcome.succeeded and outcome.device is not None:
        typer.echo(f"Printed ticket {ticket.ticket_id} on {outcome.device.address} ({outcome.device.name})")
        return
    if outcome.state is SessionState.IDLE:
        typer.echo("Printing cancelled")
        return
    typer.echo(f"Error: {outcome.message}", err=True)
    raise typer.Exit(code=1)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
