"""CLI commands for running QR check-in at events."""

import asyncio
import contextlib
import signal
from datetime import datetime
from pathlib import Path
from uuid import UUID

import typer

from qrcheckin.config.logging import setup_logging
from qrcheckin.config.settings import settings
from qrcheckin.email_service import get_email_service
from qrcheckin.events.active_event import ActiveEventState
from qrcheckin.events.coordinator import EventCoordinator
from qrcheckin.events.dtos import (
    BatchProgressDTO,
    CheckInPipelineError,
    CredentialRejectedError,
    NoActiveEventError,
)
from qrcheckin.events.features.send_credentials.dispatch import DispatchRegistry
from qrcheckin.events.features.upload_attendees.template import TEMPLATE_FILENAME, build_template_xlsx
from qrcheckin.events.repository.store import SqlAttendeeStore

app = typer.Typer(help="CLI commands for QR check-in at events")

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"]

EVENT_OPTION_HELP = "Event UUID (defaults to the event chosen with use-event)"


@app.callback()
def main():
    setup_logging()


def _coordinator() -> EventCoordinator:
    store = SqlAttendeeStore()
    return EventCoordinator(
        store=store,
        dispatch=DispatchRegistry(store=store, email_service=get_email_service()),
    )


async def _resolve_event_id(coordinator: EventCoordinator, event: str | None) -> UUID:
    """An explicit --event wins; otherwise use the remembered event if it still exists."""
    if event:
        return UUID(event)

    state = ActiveEventState.load(settings.active_event_file)
    event_id = state.validated(await coordinator.list_events())
    if event_id is None:
        if state.event_id is not None:
            ActiveEventState.clear(settings.active_event_file)
        raise NoActiveEventError("No event selected. Pass --event or run `use-event` first.")
    return event_id


def _run(coro):
    """Run a coroutine, turning expected failures into a red message and exit code 1."""
    try:
        return asyncio.run(coro)
    except CredentialRejectedError as e:
        typer.secho(f"Rejected ({e.code}): {e}", fg=typer.colors.RED)
        raise typer.Exit(1)
    except (CheckInPipelineError, ValueError) as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(1)


@app.command()
def create_event(
    title: str = typer.Option(..., "--title", "-t", help="Event title"),
    date: datetime = typer.Option(..., "--date", "-d", formats=DATE_FORMATS, help="Event date"),
    location: str = typer.Option(..., "--location", "-l", help="Event location"),
    description: str = typer.Option(None, "--description", help="Optional description"),
    select_event: bool = typer.Option(True, "--select/--no-select", help="Make it the active event"),
):
    """Create a new event."""
    async def _create_event():
        coordinator = _coordinator()
        # Naive input is local time
        return await coordinator.create_event(title, date.astimezone(), location, description)

    event = _run(_create_event())
    if select_event:
        ActiveEventState.select(settings.active_event_file, event.uuid)

    typer.secho("Event created!", fg=typer.colors.GREEN)
    typer.secho(f"  Event ID: {event.uuid}", fg=typer.colors.CYAN)
    typer.secho(f"  {event.title} - {event.date:%Y-%m-%d} - {event.location}", fg=typer.colors.BLUE)


@app.command()
def list_events():
    """List all events, most recent first."""
    events = _run(_coordinator().list_events())
    active = ActiveEventState.load(settings.active_event_file).event_id

    if not events:
        typer.secho("No events yet.", fg=typer.colors.YELLOW)
        return
    for event in events:
        marker = "*" if event.uuid == active else " "
        typer.secho(
            f"{marker} {event.uuid}  {event.date:%Y-%m-%d}  {event.title} ({event.location})",
            fg=typer.colors.GREEN if marker == "*" else typer.colors.BLUE,
        )


@app.command()
def use_event(
    event_id: str = typer.Argument(..., help="Event UUID to make active"),
):
    """Remember an event so later commands can omit --event."""
    async def _use_event():
        return await _coordinator().require_event(UUID(event_id))

    event = _run(_use_event())
    ActiveEventState.select(settings.active_event_file, event.uuid)
    typer.secho(f"Active event: {event.title} ({event.uuid})", fg=typer.colors.GREEN)


@app.command()
def delete_event(
    event: str = typer.Option(None, "--event", "-e", help=EVENT_OPTION_HELP),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete an event with all its attendees and check-ins."""
    async def _delete_event():
        coordinator = _coordinator()
        event_id = await _resolve_event_id(coordinator, event)
        details = await coordinator.require_event(event_id)
        confirmed = yes or typer.confirm(
            f"Delete '{details.title}' and all of its attendees and check-ins?"
        )
        if not confirmed:
            return None
        return await coordinator.delete_event(event_id, confirmed=True)

    deleted = _run(_delete_event())
    if deleted is None:
        typer.secho("Aborted, nothing deleted.", fg=typer.colors.YELLOW)
        raise typer.Exit(1)

    state = ActiveEventState.load(settings.active_event_file)
    if state.event_id == deleted.event_id:
        ActiveEventState.clear(settings.active_event_file)

    typer.secho("Event deleted!", fg=typer.colors.GREEN)
    typer.secho(f"  Attendees removed: {deleted.deleted_attendee_count}", fg=typer.colors.BLUE)
    typer.secho(f"  Check-ins removed: {deleted.deleted_check_in_count}", fg=typer.colors.BLUE)


@app.command()
def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV or Excel file"),
    event: str = typer.Option(None, "--event", "-e", help=EVENT_OPTION_HELP),
):
    """Import attendees from a CSV or Excel file and issue their QR codes."""
    async def _upload():
        coordinator = _coordinator()
        event_id = await _resolve_event_id(coordinator, event)
        return await coordinator.upload_attendees(event_id, path.name, path.read_bytes())

    result = _run(_upload())

    typer.secho(f"Imported: {result.success_count}", fg=typer.colors.GREEN)
    if result.failed_count:
        typer.secho(f"Failed: {result.failed_count}", fg=typer.colors.RED)
        for error in result.errors:
            typer.secho(f"  - {error}", fg=typer.colors.RED)


@app.command()
def template(
    path: Path = typer.Argument(Path(TEMPLATE_FILENAME), dir_okay=False, help="Where to write the template"),
):
    """Write an Excel template with the columns `upload` accepts."""
    path.write_bytes(build_template_xlsx())
    typer.secho(f"Template written to {path}", fg=typer.colors.GREEN)


@app.command()
def list_attendees(
    event: str = typer.Option(None, "--event", "-e", help=EVENT_OPTION_HELP),
):
    """List the attendees of an event with their email and check-in state."""
    async def _list_attendees():
        coordinator = _coordinator()
        event_id = await _resolve_event_id(coordinator, event)
        return await coordinator.list_attendees(event_id)

    attendees = _run(_list_attendees())
    if not attendees:
        typer.secho("No attendees.", fg=typer.colors.YELLOW)
        return

    for attendee in attendees:
        checked_in = "checked in" if attendee.is_checked_in else ""
        color = typer.colors.GREEN if attendee.is_checked_in else typer.colors.BLUE
        typer.secho(
            f"{attendee.uuid}  {attendee.name} <{attendee.email}>  "
            f"{attendee.adults}A+{attendee.kids}K  {attendee.email_status.value}  {checked_in}",
            fg=color,
        )
        if attendee.last_error_message:
            typer.secho(f"    last error: {attendee.last_error_message}", fg=typer.colors.RED)


def _print_progress(progress: BatchProgressDTO) -> None:
    if progress.current == 0:
        return
    status = progress.email_status.value if progress.email_status else "SKIPPED"
    typer.secho(
        f"[{progress.current}/{progress.total}] {progress.attendee_id} {status}",
        fg=typer.colors.GREEN if status == "SENT" else typer.colors.YELLOW,
    )


@app.command()
def send(
    attendees: list[str] = typer.Option([], "--attendee", "-a", help="Attendee UUIDs to send to"),
    all_selectable: bool = typer.Option(
        False,
        "--all-selectable",
        help="Send to every attendee that is not checked in and has not been sent yet",
    ),
    event: str = typer.Option(None, "--event", "-e", help=EVENT_OPTION_HELP),
    delay: float = typer.Option(None, "--delay", help="Seconds between sends"),
):
    """Email QR codes to the selected attendees, one at a time. Ctrl-C stops after the current send."""
    async def _send():
        store = SqlAttendeeStore()
        dispatch = DispatchRegistry(store=store, email_service=get_email_service(), delay_seconds=delay)
        coordinator = EventCoordinator(store=store, dispatch=dispatch)
        event_id = await _resolve_event_id(coordinator, event)

        selection = [UUID(attendee_id) for attendee_id in attendees]
        if all_selectable:
            selection += [a.uuid for a in await coordinator.list_attendees(event_id) if a.is_selectable]
        if not selection:
            raise ValueError("Nothing to send: pass --attendee or --all-selectable")

        loop = asyncio.get_running_loop()
        # add_signal_handler is unavailable on Windows
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signal.SIGINT, dispatch.stop, event_id)
        return await coordinator.send_batch(event_id, selection, on_progress=_print_progress)

    summary = _run(_send())

    typer.echo()
    typer.secho("Dispatch cancelled." if summary.cancelled else "Dispatch finished.", fg=typer.colors.GREEN)
    typer.secho(f"  Sent: {summary.sent}", fg=typer.colors.GREEN)
    typer.secho(f"  Failed: {summary.failed}", fg=typer.colors.RED if summary.failed else typer.colors.BLUE)
    typer.secho(f"  Skipped: {summary.skipped}", fg=typer.colors.BLUE)
    for error in summary.errors:
        typer.secho(f"  - {error}", fg=typer.colors.RED)
    if summary.remaining_selection:
        typer.secho(f"  Not sent ({len(summary.remaining_selection)}):", fg=typer.colors.YELLOW)
        for attendee_id in summary.remaining_selection:
            typer.secho(f"    {attendee_id}", fg=typer.colors.YELLOW)


@app.command()
def retry(
    attendee_id: str = typer.Argument(..., help="Attendee UUID"),
    force: bool = typer.Option(False, "--force", help="Resend even if already sent or checked in"),
):
    """Send the QR code to a single attendee again."""
    async def _retry():
        return await _coordinator().retry_single(UUID(attendee_id), force_retry=force)

    result = _run(_retry())
    if result.success:
        typer.secho("QR code sent!", fg=typer.colors.GREEN)
    else:
        typer.secho(f"Send failed: {result.error}", fg=typer.colors.RED)
        raise typer.Exit(1)


@app.command()
def check_in(
    payload: str = typer.Option(None, "--payload", "-p", help="Scanned QR code content"),
    email: str = typer.Option(None, "--email", help="Attendee email, when the QR code is unavailable"),
    by: str = typer.Option(None, "--by", help="Name of the person checking in"),
    event: str = typer.Option(None, "--event", "-e", help=EVENT_OPTION_HELP),
):
    """Check an attendee in by QR payload or email."""
    async def _check_in():
        coordinator = _coordinator()
        event_id = await _resolve_event_id(coordinator, event)
        return await coordinator.check_in(event_id, payload=payload, email=email, checked_in_by=by)

    result = _run(_check_in())

    if result.already_checked_in:
        typer.secho(f"{result.resolved_name} was already checked in", fg=typer.colors.YELLOW)
        typer.secho(f"  at {result.checked_in_at:%Y-%m-%d %H:%M}", fg=typer.colors.YELLOW)
    else:
        typer.secho(f"Welcome, {result.resolved_name}!", fg=typer.colors.GREEN)
    typer.secho(f"  Email: {result.resolved_email}", fg=typer.colors.BLUE)
    typer.secho(f"  Party: {result.adults} adults, {result.kids} kids", fg=typer.colors.BLUE)
    typer.secho(
        f"  Meals: {result.adult_veg_meals} veg, {result.adult_non_veg_meals} non-veg, "
        f"{result.kid_meals} kids",
        fg=typer.colors.BLUE,
    )


@app.command()
def stats(
    event: str = typer.Option(None, "--event", "-e", help=EVENT_OPTION_HELP),
):
    """Show check-in progress for an event."""
    async def _stats():
        coordinator = _coordinator()
        event_id = await _resolve_event_id(coordinator, event)
        return await coordinator.check_in_stats(event_id)

    result = _run(_stats())

    typer.secho(f"Checked in: {result.checked_in}/{result.total} ({result.percentage_complete}%)", fg=typer.colors.GREEN)
    typer.secho(f"Pending: {result.pending}", fg=typer.colors.BLUE)
    typer.secho(
        f"Headcount: {result.checked_in_headcount} of {result.expected_headcount} expected",
        fg=typer.colors.CYAN,
    )


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Run the check-in API for door scanners."""
    import uvicorn

    uvicorn.run("qrcheckin.main:app", host=settings.app_host, port=settings.app_port, reload=reload)


if __name__ == "__main__":
    app()
