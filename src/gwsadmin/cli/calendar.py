from typing import Annotated, List, Optional

import typer

from ..calendar import Event, RECURRENCE_FREQUENCIES, apply_event_options
from ..errors import ValidationError
from ..validation import validate_email
from .common import AppContext, get_context, handle_errors

app = typer.Typer(help="List and modify calendar events.", no_args_is_help=True)

HEADERS = ["ID", "Summary", "Start", "End", "Location"]
HINTS = ["calendar does not exist or isn't shared with you", "insufficient permissions"]


def _validate_recurrence(count: int, frequency: str) -> None:
    if count < 1:
        raise ValidationError(f"recurrence count must be at least 1: {count}")
    if frequency.lower() not in RECURRENCE_FREQUENCIES:
        raise ValidationError(f"invalid recurrence frequency: {frequency} ({', '.join(RECURRENCE_FREQUENCIES)})")


def _show_event(app_ctx: AppContext, event: Event) -> None:
    if app_ctx.formatter.structured:
        app_ctx.echo(event)
        return
    app_ctx.echo(event, HEADERS)
    app_ctx.note(f"event URL: {event.htmlLink}")


@app.command("list")
@handle_errors("list events", HINTS)
def list_cmd(
    ctx: typer.Context,
    calendar_id: Annotated[str, typer.Argument(help="calendar ID, usually an email address")],
    num_events: Annotated[int, typer.Option("--num-events", "-n", help="number of events")] = 10,
    time_min: Annotated[Optional[str], typer.Option("--time-min", help="earliest event end, RFC3339")] = None,
    time_max: Annotated[Optional[str], typer.Option("--time-max", help="latest event start, RFC3339")] = None,
) -> None:
    """List upcoming events of a calendar in start time order."""
    app_ctx = get_context(ctx)
    try:
        events = Event.list(calendar_id, max_results=num_events, singleEvents=True, orderBy="startTime",
                            showDeleted=False, timeMin=time_min, timeMax=time_max)
    except ValueError as e:
        raise ValidationError(f"invalid time bound: {e}") from e
    app_ctx.echo(events, HEADERS)


@app.command("create")
@handle_errors("create event", HINTS)
def create(
    ctx: typer.Context,
    calendar_id: Annotated[str, typer.Argument(help="calendar ID, usually an email address")],
    summary: Annotated[str, typer.Option("--summary", "-s", help="event title")],
    begin: Annotated[str, typer.Option("--begin", "-b", help="start, RFC3339 or YYYY-MM-DD for all-day")],
    end: Annotated[str, typer.Option("--end", "-e", help="end, RFC3339 or YYYY-MM-DD for all-day")],
    attendees: Annotated[Optional[List[str]], typer.Option("--attendee", "-a", help="attendee email (repeatable)")] = None,
    description: Annotated[str, typer.Option("--description", "-d", help="event description")] = "",
    location: Annotated[str, typer.Option("--location", "-l", help="event location")] = "The Matrix",
    count: Annotated[int, typer.Option("--count", "-c", help="number of occurrences")] = 1,
    frequency: Annotated[str, typer.Option("--frequency", "-f", help="daily, weekly, monthly or yearly")] = "daily",
) -> None:
    """Create an event, optionally recurring."""
    app_ctx = get_context(ctx)
    _validate_recurrence(count, frequency)
    for a in attendees or []:
        validate_email(a)
    try:
        event = apply_event_options(Event(), summary=summary, start=begin, end=end, attendees=attendees,
                                    description=description, location=location, count=count, frequency=frequency)
    except ValueError as e:
        raise ValidationError(f"invalid event time: {e}") from e
    _show_event(app_ctx, Event.insert(calendar_id, event))


@app.command("update")
@handle_errors("update event", HINTS + ["event does not exist"])
def update(
    ctx: typer.Context,
    calendar_id: Annotated[str, typer.Argument(help="calendar ID, usually an email address")],
    event_id: Annotated[str, typer.Option("--event-id", "-i", help="event to update")],
    summary: Annotated[str, typer.Option("--summary", "-s", help="event title")] = "",
    begin: Annotated[str, typer.Option("--begin", "-b", help="start, RFC3339 or YYYY-MM-DD for all-day")] = "",
    end: Annotated[str, typer.Option("--end", "-e", help="end, RFC3339 or YYYY-MM-DD for all-day")] = "",
    attendees: Annotated[Optional[List[str]], typer.Option("--attendee", "-a", help="attendee email (repeatable)")] = None,
    description: Annotated[str, typer.Option("--description", "-d", help="event description")] = "",
    location: Annotated[str, typer.Option("--location", "-l", help="event location")] = "",
    count: Annotated[int, typer.Option("--count", "-c", help="number of occurrences")] = 1,
    frequency: Annotated[str, typer.Option("--frequency", "-f", help="daily, weekly, monthly or yearly")] = "daily",
) -> None:
    """Update an existing event.  Options not given keep their current values."""
    app_ctx = get_context(ctx)
    _validate_recurrence(count, frequency)
    for a in attendees or []:
        validate_email(a)
    event = Event.get(calendar_id, event_id)
    try:
        apply_event_options(event, summary=summary, start=begin, end=end, attendees=attendees,
                            description=description, location=location, count=count, frequency=frequency)
    except ValueError as e:
        raise ValidationError(f"invalid event time: {e}") from e
    _show_event(app_ctx, Event.update(calendar_id, event))
