from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import List, Self

from .resources import GoogleWorkSpaceResourceBase
from .access import gws
from .errors import ValidationError
from .log import log_api_call

_get_service = partial(gws.get_service, "admin", "reports_v1")

VALID_APPLICATIONS = ["admin", "login", "drive", "calendar", "groups", "mobile", "token",
                      "groups_enterprise", "saml", "chrome", "gcp", "chat", "meet"]
DEFAULT_WINDOW = timedelta(hours=24)
# the API's page size ceiling
MAX_PAGE_SIZE = 1000

CSV_HEADERS = ["Timestamp", "Actor", "Event", "IP Address", "Application"]


def parse_rfc3339(value: str, label: str) -> datetime:
    try:
        t = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise ValidationError(f"invalid {label} format (expected RFC3339): {value}") from e
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    return t


def format_rfc3339(t: datetime) -> str:
    return t.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def parse_time_range(start: str = "", end: str = "", now: datetime|None = None) -> tuple[str, str]:
    """
    Resolve the export window.  No end means now, no start means 24 hours
    before the end.  Returned as RFC3339 strings.
    """
    end_t = parse_rfc3339(end, "end-time") if end else (now or datetime.now(timezone.utc))
    start_t = parse_rfc3339(start, "start-time") if start else end_t - DEFAULT_WINDOW
    if end_t < start_t:
        raise ValidationError("end-time must be after start-time")
    return format_rfc3339(start_t), format_rfc3339(end_t)


@dataclass
class Activity(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/admin-sdk/reports/reference/rest/v1/activities#Activity
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    id: dict|None = field(default=None)
    actor: dict|None = field(default=None)
    ownerDomain: str|None = field(default=None)
    ipAddress: str|None = field(default=None)
    events: List[dict]|None = field(default=None)

    @property
    def timestamp(self) -> str:
        """'2024-10-08 13:04:05 UTC' or empty when unparseable."""
        raw = (self.id or {}).get("time", "")
        if not raw:
            return ""
        try:
            t = datetime.fromisoformat(raw)
        except ValueError:
            return ""
        return t.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    def row(self) -> dict:
        """The columns of the csv export."""
        events = self.events or []
        return {
            "Timestamp": self.timestamp,
            "Actor": (self.actor or {}).get("email", ""),
            "Event": events[0].get("name", "") if events else "",
            "IP Address": self.ipAddress or "",
            "Application": (self.id or {}).get("applicationName", ""),
        }

    @staticmethod
    def list(application: str, user_key: str = "all", start_time: str = "", end_time: str = "",
             event_names: List[str]|None = None, actor_ip: str = "", max_results: int = 0) -> List[Self]:
        """
        https://developers.google.com/admin-sdk/reports/reference/rest/v1/activities/list
        Follows pagination until exhausted or max_results activities are collected.
        """
        app = application.lower()
        if app not in VALID_APPLICATIONS:
            raise ValidationError(f"invalid application type: {application}",
                                  [f"valid application types: {', '.join(VALID_APPLICATIONS)}"])
        args = {"userKey": user_key or "all", "applicationName": app}
        if start_time:
            args["startTime"] = start_time
        if end_time:
            args["endTime"] = end_time
        if actor_ip:
            args["actorIpAddress"] = actor_ip
        if event_names:
            args["eventName"] = ",".join(event_names)
        if max_results > 0:
            args["maxResults"] = min(max_results, MAX_PAGE_SIZE)
        log_api_call("list", "activities", **args)
        method = _get_service().activities().list
        activities = []
        page_token = None
        while True:
            response = method(pageToken=page_token, **args).execute()
            for a in (response or {}).get('items', []):
                activities.append(Activity.from_response(a))
            page_token = (response or {}).get('nextPageToken', None)
            if not page_token or (max_results > 0 and len(activities) >= max_results):
                break
        return activities[:max_results] if max_results > 0 else activities
