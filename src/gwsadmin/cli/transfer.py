from typing import Annotated

import typer

from ..datatransfer import transfer_documents
from ..directory import User
from ..validation import validate_email, sanitize_input
from .common import get_context, handle_errors


@handle_errors("transfer documents", ["a user does not exist", "the Data Transfer API isn't enabled",
                                      "insufficient permissions"])
def transfer(
    ctx: typer.Context,
    from_user: Annotated[str, typer.Option("--from", "-f", help="current owner of the documents")],
    to_user: Annotated[str, typer.Option("--to", "-t", help="new owner of the documents")],
) -> None:
    """Transfer ownership of all Drive documents from one user to another."""
    app_ctx = get_context(ctx)
    from_email = validate_email(sanitize_input(from_user))
    to_email = validate_email(sanitize_input(to_user))
    from_id = User.get(from_email).id
    to_id = User.get(to_email).id
    app_ctx.note(f"document transfer: {from_email} --> {to_email}")
    result = transfer_documents(from_id, to_id)
    if app_ctx.formatter.structured:
        app_ctx.echo(result)
    elif result.completed:
        app_ctx.note("transfer complete")
    else:
        app_ctx.note("transfer running long, it will carry on in the background")
