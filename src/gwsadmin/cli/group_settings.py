from typing import Annotated, Optional

import typer

from ..errors import ValidationError
from ..groupsettings import GroupSettings, UPDATABLE, render_settings
from ..validation import validate_email
from .common import get_context, handle_errors

app = typer.Typer(help="Show and change Google Groups settings.", no_args_is_help=True)

HINTS = ["group does not exist", "insufficient permissions",
         "the Groups Settings API isn't enabled for the project"]


def _opt(flag: str, help: str):
    return typer.Option(flag, help=help)


@app.command("list")
@handle_errors("get group settings", HINTS)
def list_cmd(
    ctx: typer.Context,
    group: Annotated[str, typer.Argument(help="group email, @domain is added if missing")],
) -> None:
    """Show a group's settings, sectioned, or whole in json/yaml."""
    app_ctx = get_context(ctx)
    settings = GroupSettings.get(validate_email(app_ctx.group_email(group)))
    if app_ctx.formatter.structured:
        app_ctx.echo(settings)
    else:
        typer.echo(render_settings(settings), nl=False)


@app.command("update")
@handle_errors("update group settings", HINTS)
def update(
    ctx: typer.Context,
    group: Annotated[str, typer.Argument(help="group email, @domain is added if missing")],
    who_can_join: Annotated[Optional[str], _opt("--who-can-join", "CAN_REQUEST_TO_JOIN, ALL_IN_DOMAIN_CAN_JOIN, ANYONE_CAN_JOIN, INVITED_CAN_JOIN")] = None,
    who_can_view_group: Annotated[Optional[str], _opt("--who-can-view-group", "ANYONE_CAN_VIEW, ALL_IN_DOMAIN_CAN_VIEW, ALL_MEMBERS_CAN_VIEW, ALL_MANAGERS_CAN_VIEW")] = None,
    who_can_view_membership: Annotated[Optional[str], _opt("--who-can-view-membership", "who can view the member list")] = None,
    allow_external_members: Annotated[Optional[str], _opt("--allow-external-members", "true/false")] = None,
    who_can_post_message: Annotated[Optional[str], _opt("--who-can-post-message", "NONE_CAN_POST, ALL_MANAGERS_CAN_POST, ALL_MEMBERS_CAN_POST, ALL_IN_DOMAIN_CAN_POST, ANYONE_CAN_POST")] = None,
    allow_web_posting: Annotated[Optional[str], _opt("--allow-web-posting", "true/false")] = None,
    message_moderation_level: Annotated[Optional[str], _opt("--message-moderation-level", "MODERATE_ALL_MESSAGES, MODERATE_NON_MEMBERS, MODERATE_NEW_MEMBERS, MODERATE_NONE")] = None,
    spam_moderation_level: Annotated[Optional[str], _opt("--spam-moderation-level", "spam moderation level")] = None,
    reply_to: Annotated[Optional[str], _opt("--reply-to", "REPLY_TO_CUSTOM, REPLY_TO_SENDER, REPLY_TO_LIST, REPLY_TO_OWNER, REPLY_TO_IGNORE")] = None,
    custom_reply_to: Annotated[Optional[str], _opt("--custom-reply-to", "custom reply-to email address")] = None,
    custom_footer_text: Annotated[Optional[str], _opt("--custom-footer-text", "footer text for messages")] = None,
    include_custom_footer: Annotated[Optional[str], _opt("--include-custom-footer", "true/false")] = None,
    send_message_deny_notification: Annotated[Optional[str], _opt("--send-message-deny-notification", "true/false")] = None,
    include_in_global_address_list: Annotated[Optional[str], _opt("--include-in-global-address-list", "true/false")] = None,
    archive_only: Annotated[Optional[str], _opt("--archive-only", "true/false")] = None,
    show_in_group_directory: Annotated[Optional[str], _opt("--show-in-group-directory", "true/false")] = None,
    who_can_leave_group: Annotated[Optional[str], _opt("--who-can-leave-group", "who can leave the group")] = None,
    who_can_add: Annotated[Optional[str], _opt("--who-can-add", "who can add members")] = None,
    who_can_invite: Annotated[Optional[str], _opt("--who-can-invite", "who can invite members")] = None,
    who_can_approve_members: Annotated[Optional[str], _opt("--who-can-approve-members", "who can approve members")] = None,
    allow_google_communication: Annotated[Optional[str], _opt("--allow-google-communication", "true/false")] = None,
    members_can_post_as_the_group: Annotated[Optional[str], _opt("--members-can-post-as-the-group", "true/false")] = None,
    who_can_contact_owner: Annotated[Optional[str], _opt("--who-can-contact-owner", "who can contact the owner")] = None,
    who_can_moderate_members: Annotated[Optional[str], _opt("--who-can-moderate-members", "who can moderate members")] = None,
    who_can_moderate_content: Annotated[Optional[str], _opt("--who-can-moderate-content", "who can moderate content")] = None,
    who_can_ban_users: Annotated[Optional[str], _opt("--who-can-ban-users", "who can ban users")] = None,
) -> None:
    """
    Change only the settings given; everything else is left as is.
    """
    app_ctx = get_context(ctx)
    group_email = validate_email(app_ctx.group_email(group))
    given = locals()
    changes = {}
    for setting in UPDATABLE:
        # whoCanJoin -> who_can_join
        arg = "".join(f"_{c.lower()}" if c.isupper() else c for c in setting)
        value = given.get(arg)
        if value is not None:
            changes[setting] = value
    if not changes:
        raise ValidationError("no settings specified to update", ["see --help for the available settings"])
    if "customReplyTo" in changes and changes["customReplyTo"]:
        validate_email(changes["customReplyTo"])
    result = GroupSettings.patch(group_email, changes)
    if app_ctx.formatter.structured:
        app_ctx.echo(result)
        return
    app_ctx.note(f"Successfully updated settings for group: {result.email or group_email}")
    app_ctx.note("\nUpdated settings:")
    for setting in changes:
        typer.echo(f"  {setting}")
