from typing import Annotated, Optional

import typer

from ..cache import build_key
from ..directory import OrgUnit, split_ou_path
from ..errors import ValidationError
from ..output import OutputFormat
from .common import AppContext, get_context, handle_errors

app = typer.Typer(help="Manage organizational units.", no_args_is_help=True)

OU_TYPES = ["all", "children"]
DELETE_HINTS = ["OU contains users (move them first)", "OU contains sub-OUs (delete them first)",
                "OU path is incorrect"]


def _check_path(path: str) -> str:
    if not path.startswith("/"):
        raise ValidationError(f"OU path must start with '/': {path}")
    return path


def _show_ou(ou: OrgUnit, indent: str = "") -> None:
    typer.echo(f"{indent}{ou.name}")
    typer.echo(f"{indent}  Path: {ou.orgUnitPath}")
    if ou.description:
        typer.echo(f"{indent}  Description: {ou.description}")
    if ou.parentOrgUnitPath:
        typer.echo(f"{indent}  Parent: {ou.parentOrgUnitPath}")
    typer.echo(f"{indent}  ID: {ou.orgUnitId}")
    if ou.blockInheritance:
        typer.echo(f"{indent}  Block Inheritance: Yes")


def _result(app_ctx: AppContext, action: str, ou: OrgUnit) -> None:
    if app_ctx.formatter.structured:
        app_ctx.echo(ou)
        return
    app_ctx.note(f"Successfully {action} organizational unit:\n")
    _show_ou(ou, "  ")


@app.command("list")
@handle_errors("list organizational units", ["OU path is incorrect", "insufficient permissions"])
def list_cmd(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="start of the tree to list")] = "/",
    ou_type: Annotated[str, typer.Option("--type", "-t", help="all or children")] = "all",
) -> None:
    """List organizational units below PATH, indented by depth."""
    app_ctx = get_context(ctx)
    if ou_type not in OU_TYPES:
        raise ValidationError(f"invalid OU list type: {ou_type} ({', '.join(OU_TYPES)})")
    key = build_key("ous", app_ctx.domain or "my_customer", {"path": path, "type": ou_type})
    data = app_ctx.cached(key, lambda: [o.trim() for o in OrgUnit.list(path, ou_type)])
    ous = sorted((OrgUnit.from_response(o) for o in data), key=lambda o: o.orgUnitPath or "")
    if app_ctx.formatter.mode != OutputFormat.PLAIN:
        app_ctx.echo(ous, ["Name", "Path", "Description", "ID"])
        return
    if not ous:
        app_ctx.note("No organizational units found.")
        return
    app_ctx.note(f"Found {len(ous)} organizational unit(s):\n")
    for ou in ous:
        _show_ou(ou, "  " * max(ou.depth - 1, 0))
        typer.echo()


@app.command("create")
@handle_errors("create organizational unit", ["the parent OU does not exist", "an OU with this name exists",
                                              "insufficient permissions"])
def create(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="full path of the new OU, e.g. /Sales/EMEA")],
    description: Annotated[str, typer.Option("--description", "-d", help="OU description")] = "",
    parent: Annotated[str, typer.Option("--parent", "-p", help="parent path, taken from PATH if not given")] = "",
    block_inheritance: Annotated[bool, typer.Option("--block-inheritance", "-b", help="block policy inheritance")] = False,
) -> None:
    """Create an organizational unit."""
    app_ctx = get_context(ctx)
    parent_path, name = split_ou_path(_check_path(path))
    if not name:
        raise ValidationError(f"OU path has no name: {path}")
    ou = OrgUnit(name=name, parentOrgUnitPath=_check_path(parent) if parent else parent_path,
                 description=description or None, blockInheritance=block_inheritance or None)
    _result(app_ctx, "created", OrgUnit.insert(ou))


@app.command("update")
@handle_errors("update organizational unit", ["OU path is incorrect", "insufficient permissions"])
def update(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="OU to update")],
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="new name")] = None,
    description: Annotated[Optional[str], typer.Option("--description", "-d", help="new description")] = None,
    parent: Annotated[Optional[str], typer.Option("--parent", "-p", help="new parent path")] = None,
    block_inheritance: Annotated[Optional[str], typer.Option("--block-inheritance", "-b", help="true or false")] = None,
) -> None:
    """Rename, move or describe an organizational unit."""
    app_ctx = get_context(ctx)
    _check_path(path)
    body = {}
    if name:
        body["name"] = name
    if description is not None:
        body["description"] = description
    if parent:
        body["parentOrgUnitPath"] = _check_path(parent)
    if block_inheritance is not None:
        if block_inheritance.lower() not in ["true", "false"]:
            raise ValidationError("--block-inheritance must be 'true' or 'false'")
        body["blockInheritance"] = block_inheritance.lower() == "true"
    if not body:
        raise ValidationError("no update fields specified",
                              ["use --name, --description, --parent or --block-inheritance"])
    _result(app_ctx, "updated", OrgUnit.patch(path, body))


@app.command("delete")
@handle_errors("delete organizational unit", DELETE_HINTS)
def delete(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="OU to delete, it must be empty")],
    force: Annotated[bool, typer.Option("--force", "-f", help="confirm the deletion")] = False,
) -> None:
    """Delete an empty organizational unit.  This cannot be undone."""
    app_ctx = get_context(ctx)
    _check_path(path)
    app_ctx.confirm(force, f"delete organizational unit {path}")
    OrgUnit.delete(path)
    app_ctx.note(f"Successfully deleted organizational unit: {path}")
