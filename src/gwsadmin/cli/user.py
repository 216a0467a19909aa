from typing import Annotated, List, Optional
import json
import sys

import typer

from ..cache import build_key
from ..directory import (User, Group, Member, FORMER_EMPLOYEES_OU, random_password, user_name, parse_phones,
                         manager_relation, address_entry, organization_entry, employee_id_entry,
                         employee_type_schema, clear_pii, disable_user)
from ..errors import ValidationError
from ..validation import (validate_email, validate_uuid, validate_department, validate_group_name,
                          sanitize_input)
from .common import AppContext, get_context, handle_errors

app = typer.Typer(help="Create, list and modify users.", no_args_is_help=True)

HEADERS = ["Name", "Email", "Admin", "OrgUnitPath"]

WELCOME = """Your Google Workspace account has been created.
Username: {email}
Password: {password}
URL: https://www.google.com/accounts/AccountChooser?Email={email}&continue=https://apps.google.com/user/hub
"""

SUSPEND_HINTS = ["user does not exist", "insufficient permissions", "user is already suspended",
                 "super admin accounts may have restrictions"]
UNSUSPEND_HINTS = ["user does not exist", "insufficient permissions", "user is not suspended"]
EMPLOYEE_TYPES = ["staff", "contractor"]


def list_users(app_ctx: AppContext) -> List[User]:
    """All users, through the response cache."""
    key = build_key("users", app_ctx.domain or "my_customer")
    data = app_ctx.cached(key, lambda: [u.trim() for u in User.list()])
    return [User.from_response(u) for u in data]


def add_to_groups(app_ctx: AppContext, email: str, groups: List[str]) -> None:
    for g in groups:
        validate_group_name(g)
        Member.insert(app_ctx.group_email(g), email)
        app_ctx.note(f"added {email} to {app_ctx.group_email(g)}")


@app.command("list")
@handle_errors("list users")
def list_cmd(
    ctx: typer.Context,
    email: Annotated[Optional[str], typer.Argument(help="show only this user")] = None,
    disabled_only: Annotated[bool, typer.Option("--disabled-only", "-d", help="only accounts in the former employees OU")] = False,
) -> None:
    """List all users, or show one user in full."""
    app_ctx = get_context(ctx)
    if email:
        app_ctx.echo(User.get(validate_email(sanitize_input(email)), projection="full"))
        return
    users = list_users(app_ctx)
    if disabled_only:
        # filtered here as the API rejects orgUnitPath queries with spaces
        users = [u for u in users if u.orgUnitPath == FORMER_EMPLOYEES_OU]
    if app_ctx.formatter.structured:
        app_ctx.echo(users)
    else:
        app_ctx.echo([u.summary() for u in users], HEADERS)


@app.command("create")
@handle_errors("create user", ["the user already exists", "the domain isn't verified for this account",
                               "insufficient permissions"])
def create(
    ctx: typer.Context,
    email: Annotated[str, typer.Argument(help="primary email of the new user")],
    personal_email: Annotated[str, typer.Option("--email", "-e", help="personal email address")],
    first_name: Annotated[str, typer.Option("--first-name", "-f", help="first name")],
    last_name: Annotated[str, typer.Option("--last-name", "-l", help="last name")],
    groups: Annotated[Optional[List[str]], typer.Option("--groups", "-g", help="group to join (repeatable)")] = None,
) -> None:
    """
    Create a user with a random password that must be changed on first login,
    optionally adding them to groups.  Prints the welcome text.
    """
    app_ctx = get_context(ctx)
    primary = validate_email(sanitize_input(email))
    personal = validate_email(sanitize_input(personal_email))
    first = sanitize_input(first_name)
    last = sanitize_input(last_name)
    if not first or not last:
        raise ValidationError("first and last name are required")
    password = random_password(12)
    user = User(primaryEmail=primary, password=password, changePasswordAtNextLogin=True,
                name=user_name(first, last),
                emails=[{"address": personal, "type": "home"}, {"address": primary, "primary": True}])
    User.insert(user)
    add_to_groups(app_ctx, primary, groups or [])
    typer.echo(WELCOME.format(email=primary, password=password), nl=False)


@app.command("update")
@handle_errors("update user", ["user does not exist", "insufficient permissions"])
def update(
    ctx: typer.Context,
    email: Annotated[str, typer.Argument(help="user to update")],
    address: Annotated[Optional[str], typer.Option("--address", "-a", help="postal address")] = None,
    dept: Annotated[Optional[str], typer.Option("--dept", "-d", help="department")] = None,
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="job title")] = None,
    employee_id: Annotated[Optional[str], typer.Option("--id", "-i", help="employee UUID")] = None,
    employee_type: Annotated[Optional[str], typer.Option("--type", "-e", help="staff or contractor")] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="overwrite existing values such as the employee ID")] = False,
    groups: Annotated[Optional[List[str]], typer.Option("--group", "-g", help="group to join (repeatable)")] = None,
    ou: Annotated[Optional[str], typer.Option("--ou", "-o", help="org unit path")] = None,
    manager: Annotated[Optional[str], typer.Option("--manager", "-m", help="manager's email")] = None,
    phone: Annotated[Optional[str], typer.Option("--phone", "-p", help="phones as type:number;type:number")] = None,
    remove: Annotated[bool, typer.Option("--remove", "-r", help="sign out, clear PII, disable and remove from groups")] = False,
    clear: Annotated[bool, typer.Option("--clear-pii", help="clear personal information")] = False,
) -> None:
    """
    Update a user from options.  With no options a JSON user body is read from stdin.
    """
    app_ctx = get_context(ctx)
    user_email = validate_email(sanitize_input(email))
    groups = groups or []
    body = {}
    leave_groups = []
    if not any([address, dept, title, employee_id, employee_type, ou, manager, phone, groups, remove, clear]):
        try:
            body = json.load(sys.stdin)
        except ValueError as e:
            raise ValidationError(f"invalid user JSON on stdin: {e}") from e
        if not isinstance(body, dict):
            raise ValidationError("user JSON on stdin must be an object")
    elif remove:
        User.sign_out(user_email)
        disable_user(clear_pii(body))
        leave_groups = Group.list(user_key=user_email)
    elif clear:
        clear_pii(body)
    else:
        if address:
            body["addresses"] = address_entry(sanitize_input(address))
        if dept or title:
            body["organizations"] = organization_entry(validate_department(sanitize_input(dept)) if dept else "",
                                                       sanitize_input(title or ""))
        if employee_id:
            uid = validate_uuid(employee_id)
            if not User.get(user_email).externalIds or force:
                body["externalIds"] = employee_id_entry(uid)
            else:
                app_ctx.note("Skipping update of existing Employee ID, use --force.")
        if employee_type:
            if employee_type.lower() not in EMPLOYEE_TYPES:
                raise ValidationError(f"invalid employee type: {employee_type} (staff or contractor)")
            body["customSchemas"] = employee_type_schema(employee_type)
        if ou:
            body["orgUnitPath"] = ou
        if manager:
            body["relations"] = manager_relation(validate_email(sanitize_input(manager)))
        if phone:
            body["phones"] = parse_phones(phone)

    if body:
        User.patch(user_email, body)
    for g in leave_groups:
        Member.delete(g.email, user_email)
        app_ctx.note(f"removed {user_email} from {g.email}")
    add_to_groups(app_ctx, user_email, groups)
    app_ctx.note(f"updated {user_email}")


def _set_suspended(ctx: typer.Context, email: str, suspended: bool, reason: str, force: bool) -> None:
    app_ctx = get_context(ctx)
    user_email = validate_email(sanitize_input(email))
    action = "suspend" if suspended else "unsuspend"
    app_ctx.confirm(force, f"{action} {user_email}")
    body = {"suspended": suspended}
    if suspended and reason:
        body["suspensionReason"] = sanitize_input(reason)
    result = User.patch(user_email, body)
    if app_ctx.formatter.structured:
        app_ctx.echo(result)
        return
    name = result.name or {}
    app_ctx.note(f"Successfully {action}ed user account:\n")
    typer.echo(f"  Email: {result.primaryEmail}")
    typer.echo(f"  Name: {name.get('givenName', '')} {name.get('familyName', '')}")
    typer.echo(f"  Suspended: {'true' if result.suspended else 'false'}")
    if result.suspensionReason:
        typer.echo(f"  Reason: {result.suspensionReason}")


@app.command("suspend")
@handle_errors("suspend user", SUSPEND_HINTS)
def suspend(
    ctx: typer.Context,
    email: Annotated[str, typer.Argument(help="user to suspend")],
    reason: Annotated[str, typer.Option("--reason", "-r", help="reason for suspension")] = "",
    force: Annotated[bool, typer.Option("--force", "-f", help="confirm the suspension")] = False,
) -> None:
    """Suspend a user: no sign in, no services, mail bounces."""
    _set_suspended(ctx, email, True, reason, force)


@app.command("unsuspend")
@handle_errors("unsuspend user", UNSUSPEND_HINTS)
def unsuspend(
    ctx: typer.Context,
    email: Annotated[str, typer.Argument(help="user to restore")],
    force: Annotated[bool, typer.Option("--force", "-f", help="confirm restoring the account")] = False,
) -> None:
    """Restore a suspended user."""
    _set_suspended(ctx, email, False, "", force)
