"""
gwsadmin command line entry point.
"""
from pathlib import Path
from typing import Annotated, Optional
import logging

import typer

from .. import __version__
from ..access import gws
from ..cache import ResponseCache
from ..log import setup_logging
from ..config import load_settings
from ..output import Formatter
from . import (alias, audit, cache, cal_resource, calendar, config, group, group_settings, ou,
               transfer, user)
from .common import AppContext, get_context, handle_errors

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="gwsadmin",
    help="Administer a Google Workspace domain: users, groups, org units, calendars and more.",
    add_completion=True,
    no_args_is_help=True,
)

app.add_typer(user.app, name="user")
app.add_typer(group.app, name="group")
app.add_typer(group_settings.app, name="group-settings")
app.add_typer(calendar.app, name="calendar")
app.add_typer(ou.app, name="ou")
app.add_typer(alias.app, name="alias")
app.add_typer(cal_resource.app, name="cal-resource")
app.add_typer(audit.app, name="audit")
app.add_typer(cache.app, name="cache")
app.add_typer(config.app, name="config")
app.command("transfer")(transfer.transfer)


@app.callback()
@handle_errors("startup")
def main(
    ctx: typer.Context,
    config_file: Annotated[Optional[Path], typer.Option("--config", help="config file (default ~/.gwsadmin.yaml)")] = None,
    client_secret: Annotated[Optional[str], typer.Option("--client-secret", help="OAuth client secret file")] = None,
    token_file: Annotated[Optional[str], typer.Option("--token-file", help="stored OAuth token file")] = None,
    domain: Annotated[Optional[str], typer.Option("--domain", help="Google Workspace domain")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="debug logging")] = False,
    log_level: Annotated[str, typer.Option("--log-level", help="debug, info, warn or error")] = "info",
    json_log: Annotated[bool, typer.Option("--json-log", help="log as JSON lines")] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="assume yes for destructive operations")] = False,
    output_format: Annotated[Optional[str], typer.Option("--format", help="json, yaml, csv, table or plain")] = None,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="suppress headers and informational output")] = False,
    no_cache: Annotated[bool, typer.Option("--no-cache", help="bypass the response cache")] = False,
    cache_ttl: Annotated[Optional[str], typer.Option("--cache-ttl", help="cache TTL such as 15m or 1h")] = None,
) -> None:
    setup_logging(log_level, verbose, json_log)
    settings = load_settings(config_file,
                             domain=domain,
                             client_secret=client_secret,
                             token_file=token_file,
                             output_format=output_format,
                             cache_ttl=cache_ttl,
                             cache_enabled=False if no_cache else None,
                             quiet=quiet or None,
                             yes=yes or None)
    formatter = Formatter(settings.output_format, settings.quiet)
    cache_store = ResponseCache(settings.cache_dir, settings.cache_enabled, settings.cache_ttl)
    gws.client_secrets = settings.client_secret
    gws.token_file = settings.token_file
    ctx.obj = AppContext(settings=settings, formatter=formatter, cache=cache_store)
    logger.debug("settings: %s", settings.to_dict())


@app.command("init")
@handle_errors("init", ["the client secret file is missing or invalid",
                        "the OAuth consent screen was closed before finishing"])
def init(
    ctx: typer.Context,
    force: Annotated[bool, typer.Option("--force", "-f", help="discard the stored token and re-authorize")] = False,
) -> None:
    """Authorize gwsadmin against Google Workspace."""
    app_ctx = get_context(ctx)
    if force and gws.forget():
        app_ctx.note(f"removed stored token {gws.token_file}")
    gws.connect()
    app_ctx.note(f"authorized, token stored in {gws.token_file}")


@app.command("version")
def version(
    short: Annotated[bool, typer.Option("--short", "-s", help="print only the version number")] = False,
) -> None:
    """Print the gwsadmin version."""
    if short:
        typer.echo(__version__)
    else:
        typer.echo(f"gwsadmin version {__version__}")
