from datetime import datetime, timezone
from typing import Annotated, Optional

import typer

from ..cache import ALL, CacheStats, format_bytes
from ..config import format_duration
from ..errors import ValidationError
from .common import get_context, handle_errors

app = typer.Typer(help="Inspect and clear the response cache.", no_args_is_help=True)

CLEARABLE = ["users", "groups", "ous", "resources", ALL]


def time_ago(t: datetime, now: datetime|None = None) -> str:
    seconds = int(((now or datetime.now(timezone.utc)) - t).total_seconds())
    if seconds < 60:
        return f"{seconds} seconds ago"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    return f"{seconds // 86400} days ago"


def status_record(stats: CacheStats, now: datetime|None = None) -> dict:
    record = {
        "enabled": stats.enabled,
        "location": stats.location,
        "total_size": format_bytes(stats.total_size),
        "total_size_bytes": stats.total_size,
        "entry_count": stats.entry_count,
    }
    if stats.oldest:
        record["oldest_entry"] = time_ago(stats.oldest, now)
    if stats.newest:
        record["newest_entry"] = time_ago(stats.newest, now)
    record["default_ttl"] = format_duration(stats.ttl)
    return record


@app.command("status")
@handle_errors("cache status", ["the cache directory isn't readable"])
def status(ctx: typer.Context) -> None:
    """Show where the cache lives, how big it is and how old its entries are."""
    app_ctx = get_context(ctx)
    stats = app_ctx.cache.stats()
    record = status_record(stats)
    if app_ctx.formatter.structured:
        app_ctx.echo(record)
        return
    typer.echo("Cache Status")
    typer.echo("============")
    typer.echo(f"Enabled:       {'true' if stats.enabled else 'false'}")
    typer.echo(f"Location:      {record['location']}")
    typer.echo(f"Total Size:    {record['total_size']}")
    typer.echo(f"Entry Count:   {record['entry_count']}")
    if stats.entry_count > 0:
        typer.echo(f"Oldest Entry:  {record.get('oldest_entry', '')}")
        typer.echo(f"Newest Entry:  {record.get('newest_entry', '')}")
    typer.echo(f"Default TTL:   {record['default_ttl']}")
    if not stats.enabled:
        app_ctx.note("\nNote: Caching is currently disabled")
        app_ctx.note("Enable with: cache.enabled: true in the config file or drop --no-cache")


@app.command("clear")
@handle_errors("cache clear", ["the cache directory isn't writable"])
def clear(
    ctx: typer.Context,
    resource_type: Annotated[Optional[str], typer.Argument(help=f"one of {', '.join(CLEARABLE)}")] = None,
    clear_all: Annotated[bool, typer.Option("--all", help="clear every entry")] = False,
) -> None:
    """Remove cached responses for one resource type, or all of them."""
    app_ctx = get_context(ctx)
    target = resource_type or ALL
    if clear_all:
        target = ALL
    if target not in CLEARABLE:
        raise ValidationError(f"invalid resource type: {target}", [f"valid types: {', '.join(CLEARABLE)}"])
    count = app_ctx.cache.clear(target)
    if target == ALL:
        app_ctx.note(f"All cache entries cleared ({count} removed)")
    else:
        app_ctx.note(f"Cache cleared for {target} ({count} removed)")
