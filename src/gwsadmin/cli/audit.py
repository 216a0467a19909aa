from typing import Annotated, List, Optional, TextIO
import sys

import typer

from ..access import validate_credential_path
from ..errors import ValidationError
from ..output import Formatter, OutputFormat
from ..reports import Activity, CSV_HEADERS, VALID_APPLICATIONS, parse_time_range
from .common import get_context, handle_errors

app = typer.Typer(help="Export audit logs from the Reports API.", no_args_is_help=True)

EXPORT_FORMATS = [OutputFormat.JSON, OutputFormat.CSV]


def write_activities(writer: TextIO, activities: List[Activity], fmt: OutputFormat) -> None:
    """csv gets the flattened columns, json the activities whole."""
    if fmt == OutputFormat.CSV:
        Formatter(OutputFormat.CSV).format(writer, [a.row() for a in activities], CSV_HEADERS)
    else:
        Formatter(OutputFormat.JSON).format(writer, activities)


@app.command("export")
@handle_errors("export audit logs", ["the Reports API isn't enabled for the project",
                                     "insufficient permissions (audit read-only scope)",
                                     "invalid user or application"])
def export(
    ctx: typer.Context,
    application: Annotated[str, typer.Option("--app", help=f"application: {', '.join(VALID_APPLICATIONS)}")],
    start_time: Annotated[str, typer.Option("--start-time", help="RFC3339, default 24 hours before the end")] = "",
    end_time: Annotated[str, typer.Option("--end-time", help="RFC3339, default now")] = "",
    user: Annotated[str, typer.Option("--user", help="only activities of this user")] = "",
    event_names: Annotated[Optional[List[str]], typer.Option("--event-name", help="event name (repeatable)")] = None,
    actor_ip: Annotated[str, typer.Option("--actor-ip", help="only activities from this IP address")] = "",
    max_results: Annotated[int, typer.Option("--max-results", help="stop after this many, 0 for all")] = 0,
    output: Annotated[str, typer.Option("--output", "-o", help="json or csv")] = "json",
    output_file: Annotated[Optional[str], typer.Option("--output-file", "-f", help="write here instead of stdout")] = None,
) -> None:
    """
    Export admin, login, drive and other audit activities for a time window.
    """
    app_ctx = get_context(ctx)
    try:
        fmt = OutputFormat(output.lower())
    except ValueError:
        fmt = None
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"invalid output format: {output} (json or csv)")
    if max_results < 0:
        raise ValidationError(f"max-results can't be negative: {max_results}")
    path = validate_credential_path(output_file) if output_file else None

    start, end = parse_time_range(start_time, end_time)
    activities = Activity.list(application, user_key=user or "all", start_time=start, end_time=end,
                               event_names=event_names, actor_ip=actor_ip, max_results=max_results)
    if path is None:
        write_activities(sys.stdout, activities, fmt)
        return
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            write_activities(f, activities, fmt)
    except OSError as e:
        raise ValidationError(f"failed to write output file: {e}") from e
    app_ctx.note(f"Exported {len(activities)} activities to {path}")
