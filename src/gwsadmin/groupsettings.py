"""
Groups Settings API.  Every setting is a string upstream, including the
boolean ones which take "true"/"false".
"""
from dataclasses import dataclass, field
from typing import Self

from .resources import GoogleWorkSpaceResourceBase
from .access import service
from .log import log_api_call


@dataclass
class GroupSettings(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/admin-sdk/groups-settings/v1/reference/groups
    """
    kind: str|None = field(default=None)
    email: str|None = field(default=None, metadata={"name": "Email"})
    name: str|None = field(default=None, metadata={"name": "Name"})
    description: str|None = field(default=None, metadata={"name": "Description"})
    whoCanJoin: str|None = field(default=None)
    whoCanViewMembership: str|None = field(default=None)
    whoCanViewGroup: str|None = field(default=None)
    whoCanInvite: str|None = field(default=None)
    whoCanAdd: str|None = field(default=None)
    allowExternalMembers: str|None = field(default=None)
    whoCanPostMessage: str|None = field(default=None)
    allowWebPosting: str|None = field(default=None)
    primaryLanguage: str|None = field(default=None)
    maxMessageBytes: int|None = field(default=None)
    isArchived: str|None = field(default=None)
    archiveOnly: str|None = field(default=None)
    messageModerationLevel: str|None = field(default=None)
    spamModerationLevel: str|None = field(default=None)
    replyTo: str|None = field(default=None)
    includeCustomFooter: str|None = field(default=None)
    customFooterText: str|None = field(default=None)
    sendMessageDenyNotification: str|None = field(default=None)
    defaultMessageDenyNotificationText: str|None = field(default=None)
    showInGroupDirectory: str|None = field(default=None)
    allowGoogleCommunication: str|None = field(default=None)
    membersCanPostAsTheGroup: str|None = field(default=None)
    messageDisplayFont: str|None = field(default=None)
    includeInGlobalAddressList: str|None = field(default=None)
    whoCanLeaveGroup: str|None = field(default=None)
    whoCanContactOwner: str|None = field(default=None)
    whoCanApproveMembers: str|None = field(default=None)
    whoCanModerateMembers: str|None = field(default=None)
    whoCanModerateContent: str|None = field(default=None)
    whoCanBanUsers: str|None = field(default=None)
    customReplyTo: str|None = field(default=None)
    enableCollaborativeInbox: str|None = field(default=None)
    whoCanDiscoverGroup: str|None = field(default=None)
    defaultSender: str|None = field(default=None)

    @staticmethod
    def get(group_email: str) -> Self:
        return GroupSettings.from_response(_get(group_email))

    @staticmethod
    def patch(group_email: str, settings: dict[str, str]) -> Self:
        """Only the given settings are sent, the rest are left alone."""
        return GroupSettings.from_response(_patch(group_email, settings))


@service("groupssettings", "v1")
def _get(group_email: str, service=None) -> dict:
    log_api_call("get", "groupssettings", groupUniqueId=group_email)
    return service.groups().get(groupUniqueId=group_email, alt="json").execute()


@service("groupssettings", "v1")
def _patch(group_email: str, settings: dict[str, str], service=None) -> dict:
    log_api_call("patch", "groupssettings", groupUniqueId=group_email, fields=",".join(settings))
    return service.groups().patch(groupUniqueId=group_email, body=settings, alt="json").execute()


# the settings the update command can change, in the order they are shown
UPDATABLE = [
    "whoCanJoin", "whoCanViewGroup", "whoCanViewMembership", "allowExternalMembers",
    "whoCanPostMessage", "allowWebPosting", "messageModerationLevel", "spamModerationLevel",
    "replyTo", "customReplyTo", "customFooterText", "includeCustomFooter",
    "sendMessageDenyNotification", "includeInGlobalAddressList",
    "archiveOnly", "showInGroupDirectory",
    "whoCanLeaveGroup", "whoCanAdd", "whoCanInvite", "whoCanApproveMembers",
    "allowGoogleCommunication", "membersCanPostAsTheGroup",
    "whoCanContactOwner", "whoCanModerateMembers", "whoCanModerateContent", "whoCanBanUsers",
]

SECTIONS = [
    ("Access Settings", [("Who Can Join", "whoCanJoin"),
                         ("Who Can View Group", "whoCanViewGroup"),
                         ("Who Can View Membership", "whoCanViewMembership"),
                         ("Allow External Members", "allowExternalMembers")]),
    ("Posting Settings", [("Who Can Post Message", "whoCanPostMessage"),
                          ("Allow Web Posting", "allowWebPosting"),
                          ("Message Moderation Level", "messageModerationLevel"),
                          ("Spam Moderation Level", "spamModerationLevel")]),
    ("Email Settings", [("Send Message Deny Notification", "sendMessageDenyNotification"),
                        ("Reply To", "replyTo"),
                        ("Custom Reply To", "customReplyTo"),
                        ("Include Custom Footer", "includeCustomFooter"),
                        ("Custom Footer Text", "customFooterText"),
                        ("Include in Global Address List", "includeInGlobalAddressList")]),
    ("Moderation Settings", [("Who Can Contact Owner", "whoCanContactOwner"),
                             ("Who Can Moderate Members", "whoCanModerateMembers"),
                             ("Who Can Moderate Content", "whoCanModerateContent")]),
    ("Archive Settings", [("Archive Only", "archiveOnly"),
                          ("Message Display Font", "messageDisplayFont"),
                          ("Show in Group Directory", "showInGroupDirectory"),
                          ("Max Message Bytes", "maxMessageBytes"),
                          ("Is Archived", "isArchived")]),
    ("Member Settings", [("Who Can Leave Group", "whoCanLeaveGroup"),
                         ("Who Can Add", "whoCanAdd"),
                         ("Who Can Invite", "whoCanInvite"),
                         ("Who Can Approve Members", "whoCanApproveMembers"),
                         ("Who Can Ban Users", "whoCanBanUsers"),
                         ("Allow Google Communication", "allowGoogleCommunication"),
                         ("Members Can Post As The Group", "membersCanPostAsTheGroup")]),
]


def _setting_line(label: str, value) -> str|None:
    if value is None:
        return None
    if isinstance(value, bool):
        value = "true" if value else "false"
    s = str(value)
    if not s or s == "0":
        return None
    return f"{label:<35}: {s}"


def render_settings(settings: GroupSettings) -> str:
    """The sectioned human readable view used by 'group-settings list'."""
    lines = ["Group Settings", "==============", ""]
    for label, attr in [("Email", "email"), ("Name", "name"), ("Description", "description")]:
        line = _setting_line(label, getattr(settings, attr))
        if line:
            lines.append(line)
    lines.append("")
    for title, entries in SECTIONS:
        lines.append(f"{title}:")
        lines.append("-" * (len(title) + 1))
        for label, attr in entries:
            line = _setting_line(f"  {label}", getattr(settings, attr))
            if line:
                lines.append(line)
        lines.append("")
    return "\n".join(lines) + "\n"
