"""Slotkeeper CLI: inspect availability and bookings from a snapshot file."""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from slotkeeper.config import get_settings
from slotkeeper.logging_config import setup_logging

# Create Typer app
app = typer.Typer(help="Slotkeeper availability and booking engine", no_args_is_help=True)
console = Console()

StoreOption = typer.Option(None, "--store", "-s", help="Snapshot JSON file (defaults to SNAPSHOT_PATH)")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug events to stderr"),
) -> None:
    """Configure logging before any command runs."""
    setup_logging(level="DEBUG" if verbose else None)


def _store_path(store: Optional[Path]) -> Path:
    return store or get_settings().snapshot_file


def _load_repo(store: Optional[Path]):
    """Build a repository from the snapshot file."""
    from slotkeeper.modules.bookings.service import BookingRepository

    path = _store_path(store)
    if not path.exists():
        console.print(f"[red]Snapshot not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid snapshot {path}: {exc}[/red]")
        raise typer.Exit(1)
    try:
        return BookingRepository.from_snapshot(data)
    except ValidationError as exc:
        console.print(f"[red]Invalid snapshot {path}: {exc.error_count()} validation error(s)[/red]")
        raise typer.Exit(1)


def _save_repo(repo, store: Optional[Path]) -> None:
    path = _store_path(store)
    path.write_text(repo.snapshot().model_dump_json(indent=2), encoding="utf-8")


def _parse_day(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid date: {value} (expected YYYY-MM-DD)[/red]")
        raise typer.Exit(1)


@app.command()
def slots(
    event_id: str = typer.Argument(..., help="Event configuration ID"),
    day: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    invitee_tz: Optional[str] = typer.Option(None, "--tz", help="Also show slots in this timezone"),
    store: Optional[Path] = StoreOption,
) -> None:
    """List offerable slots for an event on a date."""
    repo = _load_repo(store)
    event = repo.get_event(event_id)
    if not event:
        console.print(f"[red]Event not found: {event_id}[/red]")
        raise typer.Exit(1)

    target = _parse_day(day)
    result = repo.engine.check_day(target, event, repo.bookings_for_event(event_id))
    if not result.slots:
        console.print(f"[yellow]No slots on {target}: {result.reason.value}[/yellow]")
        return

    localized = None
    if invitee_tz:
        localized = repo.engine.localize_slots(target, result.slots, repo.clock.timezone, invitee_tz)

    table = Table(title=f"{event.name} — {target}")
    table.add_column("Start", style="green")
    table.add_column("End", style="green")
    if localized:
        table.add_column(invitee_tz, style="cyan")
    for index, slot in enumerate(result.slots):
        row = [slot.start, slot.end]
        if localized:
            other = localized[index]
            shift = f" ({other.day_offset:+d}d)" if other.day_offset else ""
            row.append(f"{other.start}-{other.end}{shift}")
        table.add_row(*row)

    console.print(table)
    console.print(f"\nTotal: {len(result.slots)} slots")


@app.command("next")
def next_available(
    event_id: str = typer.Argument(..., help="Event configuration ID"),
    from_day: Optional[str] = typer.Option(None, "--from", help="Start scanning at this date"),
    store: Optional[Path] = StoreOption,
) -> None:
    """Show the next date with availability."""
    repo = _load_repo(store)
    if not repo.get_event(event_id):
        console.print(f"[red]Event not found: {event_id}[/red]")
        raise typer.Exit(1)

    start = _parse_day(from_day) if from_day else None
    found = repo.next_available_date(event_id, start)
    if found:
        console.print(f"[green]Next available: {found.isoformat()}[/green]")
    else:
        console.print("[yellow]No available date within the scheduling window.[/yellow]")


@app.command()
def ics(
    booking_id: str = typer.Argument(..., help="Booking ID"),
    store: Optional[Path] = StoreOption,
) -> None:
    """Print a booking as an iCalendar document."""
    from slotkeeper.modules.export.ics import generate_ics

    repo = _load_repo(store)
    booking = repo.get_booking(booking_id)
    if not booking:
        console.print(f"[red]Booking not found: {booking_id}[/red]")
        raise typer.Exit(1)
    event = repo.get_event(booking.event_id)
    if not event:
        console.print(f"[red]Event not found for booking: {booking.event_id}[/red]")
        raise typer.Exit(1)
    typer.echo(generate_ics(booking, event), nl=False)


@app.command()
def cancel(
    booking_id: str = typer.Argument(..., help="Booking ID"),
    reason: Optional[str] = typer.Option(None, "--reason", "-r", help="Cancellation reason"),
    store: Optional[Path] = StoreOption,
) -> None:
    """Cancel a booking and promote the next waitlist entry."""
    repo = _load_repo(store)
    booking = repo.get_booking(booking_id)
    if not booking:
        console.print(f"[red]Booking not found: {booking_id}[/red]")
        raise typer.Exit(1)

    waiting_before = {e.id for e in repo.waitlist.entries_for_event(booking.event_id)}
    if repo.cancel_booking(booking_id, reason) is None:
        console.print(f"[red]Booking cannot be cancelled from status {booking.status.value}[/red]")
        raise typer.Exit(1)
    _save_repo(repo, store)

    console.print(f"[green]✓ Booking {booking_id} cancelled[/green]")
    waiting_after = {e.id for e in repo.waitlist.entries_for_event(booking.event_id)}
    for entry_id in waiting_before - waiting_after:
        entry = repo.waitlist.get(entry_id)
        console.print(f"  Notified waitlist: {entry.name} <{entry.email}>")


@app.command("no-shows")
def no_shows(
    event_id: Optional[str] = typer.Option(None, "--event", "-e", help="Restrict to one event"),
    store: Optional[Path] = StoreOption,
) -> None:
    """Show the no-show rate over past bookings."""
    repo = _load_repo(store)
    rate = repo.no_show_rate(event_id)
    scope = f"event {event_id}" if event_id else "all events"
    console.print(f"No-show rate ({scope}): [bold]{rate}%[/bold]")


@app.command()
def summary(store: Optional[Path] = StoreOption) -> None:
    """Summarize bookings by status, weekday and start time."""
    repo = _load_repo(store)
    report = repo.summarize()

    if not report.total:
        console.print("[yellow]No bookings recorded yet.[/yellow]")
        return

    table = Table(title="Bookings by status")
    table.add_column("Status", style="cyan")
    table.add_column("Count", style="green", justify="right")
    for status, count in sorted(report.by_status.items()):
        table.add_row(status.value, str(count))
    console.print(table)

    console.print(f"\n{report.upcoming} upcoming, {report.past} past")
    console.print(f"Overall no-show rate: {report.no_show_rate}%")
    if report.popular_start_times:
        popular = ", ".join(f"{time} ({count})" for time, count in report.popular_start_times)
        console.print(f"Popular start times: {popular}")
    for event_id, rate in report.no_show_rate_by_event.items():
        if rate > 20:
            event = repo.get_event(event_id)
            console.print(f"[yellow]High no-show rate for \"{event.name}\": {rate}%[/yellow]")
