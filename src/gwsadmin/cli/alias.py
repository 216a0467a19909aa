from typing import Annotated

import typer

from ..directory import Alias
from ..validation import validate_email, sanitize_input
from .common import get_context, handle_errors

app = typer.Typer(help="Manage user email aliases.", no_args_is_help=True)


@app.command("list")
@handle_errors("list aliases", ["user does not exist", "insufficient permissions", "invalid user email"])
def list_cmd(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="user email")],
) -> None:
    """List a user's email aliases."""
    app_ctx = get_context(ctx)
    user_email = validate_email(sanitize_input(user))
    aliases = Alias.list(user_email)
    if app_ctx.formatter.structured:
        app_ctx.echo(aliases)
        return
    app_ctx.note(f"Aliases for {user_email}:\n")
    if not aliases:
        app_ctx.note("No aliases found.")
        return
    app_ctx.echo(aliases, ["Alias"])
    app_ctx.note(f"\nTotal: {len(aliases)} alias(es)")


@app.command("add")
@handle_errors("add alias", ["user does not exist", "alias already exists for another user or group",
                             "alias domain is not managed by your organization", "insufficient permissions"])
def add(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="user email")],
    alias: Annotated[str, typer.Argument(help="alias email to add")],
) -> None:
    """Add an email alias to a user."""
    app_ctx = get_context(ctx)
    user_email = validate_email(sanitize_input(user))
    alias_email = validate_email(sanitize_input(alias))
    result = Alias.insert(user_email, alias_email)
    if app_ctx.formatter.structured:
        app_ctx.echo(result)
        return
    app_ctx.note("Successfully added alias:\n")
    typer.echo(f"  User:  {user_email}")
    typer.echo(f"  Alias: {result.alias or alias_email}")


@app.command("remove")
@handle_errors("remove alias", ["user does not exist", "alias does not exist for this user",
                                "alias email is incorrect", "insufficient permissions"])
def remove(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="user email")],
    alias: Annotated[str, typer.Argument(help="alias email to remove")],
    force: Annotated[bool, typer.Option("--force", "-f", help="confirm the removal")] = False,
) -> None:
    """Remove an email alias.  Mail to it stops being delivered."""
    app_ctx = get_context(ctx)
    user_email = validate_email(sanitize_input(user))
    alias_email = validate_email(sanitize_input(alias))
    app_ctx.confirm(force, f"remove alias {alias_email} from {user_email}")
    Alias.delete(user_email, alias_email)
    app_ctx.note("Successfully removed alias:")
    typer.echo(f"  User:  {user_email}")
    typer.echo(f"  Alias: {alias_email}")
