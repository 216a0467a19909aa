from typing import Annotated, Optional

import typer

from ..cache import build_key
from ..directory import Group
from ..groupreport import HEADERS, collect_group_info, member_marks
from ..validation import validate_group_name
from .common import get_context, handle_errors

app = typer.Typer(help="List groups and their members.", no_args_is_help=True)


@app.command("list")
@handle_errors("list groups", ["group does not exist", "insufficient permissions"])
def list_cmd(
    ctx: typer.Context,
    group: Annotated[Optional[str], typer.Argument(help="show only this group")] = None,
    get_members: Annotated[bool, typer.Option("--get-members", "-m", help="list the group's members")] = False,
    former_only: Annotated[bool, typer.Option("--contains-former-employees", "-i",
                                              help="only groups with former employees as members")] = False,
) -> None:
    """
    Without a group, report on every group: owners and whether members are
    inactive, external or former employees.  With a group, show it, or its
    members marked ✓ (active), x (former employee) or ✛ (group).
    """
    app_ctx = get_context(ctx)
    if group:
        group_email = app_ctx.group_email(validate_group_name(group))
        if get_members:
            app_ctx.echo(member_marks(group_email), ["Email", "Status"])
        else:
            app_ctx.echo(Group.get(group_email))
        return

    domain = app_ctx.require_domain()
    key = build_key("groups", domain)
    data = app_ctx.cached(key, lambda: [g.trim() for g in Group.list()])
    groups = [Group.from_response(g) for g in data]
    infos = collect_group_info(groups, domain)
    if former_only:
        infos = [i for i in infos if i.former_employees]
    infos.sort(key=lambda i: i.email)
    app_ctx.echo(infos, HEADERS)
