from dataclasses import dataclass, field, asdict
from typing import List, Self, Tuple
import datetime
from zoneinfo import ZoneInfo
from functools import partial

from .resources import GoogleWorkSpaceResourceBase
from .access import gws
from .log import log_api_call

_get_service = partial(gws.get_service, "calendar", "v3")

SEND_UPDATES = ["all", "externalOnly", "none"]
RECURRENCE_FREQUENCIES = ["daily", "weekly", "monthly", "yearly"]


@dataclass
class EventDateTime(GoogleWorkSpaceResourceBase):
    """
    Class for facilitating dealing with Event start/stop dicts.
    They use distinct fields to signal all-day ('date') vs specific
    day/time ('dateTime') so easier to carry both here and work out
    at runtime what is needed.
    """
    date: datetime.date|str|None = field(default=None)
    dateTime: datetime.datetime|str|None = field(default=None)
    timeZone: ZoneInfo|str|None = field(default=None)

    def __bool__(self) -> bool:
        return bool(self.date) or bool(self.dateTime)

    def __str__(self) -> str:
        s = "<empty>"
        if self.dateTime:
            s = self.dateTime.isoformat()
        elif self.date:
            s = self.date.isoformat()
        if self.timeZone:
            s = f'{s}:{str(self.timeZone)}'
        return s

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        if self.date is not None and not isinstance(self.date, datetime.date):
            self.date = datetime.date.fromisoformat(str(self.date))
        if self.dateTime is not None and not isinstance(self.dateTime, datetime.datetime):
            self.dateTime = datetime.datetime.fromisoformat(str(self.dateTime)).replace(microsecond=0)
        if self.timeZone is not None and not isinstance(self.timeZone, ZoneInfo):
            self.timeZone = ZoneInfo(str(self.timeZone))
        # 'date' means all-day, can't have 'date' and 'dateTime' so one has to take precedence
        if self.dateTime and self.date:
            self.date = None

    def values(self) -> Tuple[datetime.date|datetime.datetime|None, ZoneInfo|None]:
        return (self.dateTime if self.dateTime else self.date, self.timeZone)

    def to_base(self) -> dict|None:
        """
        GWS expects either date or dateTime, not both, as ISO strings with
        the 'T' separator.
        """
        self.fixup()
        base = {'date': self.date.isoformat() if self.date else None,
                'dateTime': self.dateTime.isoformat() if self.dateTime else None,
                'timeZone': str(self.timeZone) if self.timeZone else None}
        for k in ['date', 'dateTime', 'timeZone']:
            if base[k] is None:
                del base[k]
        return None if not base else base


@dataclass
class Event(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/calendar/api/v3/reference/events#resource-representations
    Representation of a calendar event.
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    id: str|None = field(default=None, metadata={"name": "ID"})
    status: str|None = field(default=None, metadata={"name": "Status"})
    htmlLink: str|None = field(default=None, metadata={"name": "URL"})
    created: datetime.datetime|str|None = field(default=None)
    updated: datetime.datetime|str|None = field(default=None)
    summary: str|None = field(default=None, metadata={"name": "Summary"})
    description: str|None = field(default=None, metadata={"name": "Description"})
    location: str|None = field(default=None, metadata={"name": "Location"})
    colorId: str|None = field(default=None)
    creator: dict|None = field(default=None)
    organizer: dict|None = field(default=None)
    start: EventDateTime|dict|None = field(default=None, metadata={"name": "Start"})
    end: EventDateTime|dict|None = field(default=None, metadata={"name": "End"})
    endTimeUnspecified: bool|None = field(default=None)
    recurrence: List[str]|None = field(default=None)
    recurringEventId: str|None = field(default=None)
    originalStartTime: EventDateTime|dict|None = field(default=None)
    transparency: str|None = field(default=None)
    visibility: str|None = field(default=None)
    iCalUID: str|None = field(default=None)
    sequence: int|None = field(default=None)
    attendees: List[dict]|None = field(default=None)
    attendeesOmitted: bool|None = field(default=None)
    extendedProperties: dict|None = field(default=None)
    hangoutLink: str|None = field(default=None)
    conferenceData: dict|None = field(default=None)
    anyoneCanAddSelf: bool|None = field(default=None)
    guestsCanInviteOthers: bool|None = field(default=None)
    guestsCanModify: bool|None = field(default=None)
    guestsCanSeeOtherGuests: bool|None = field(default=None)
    privateCopy: bool|None = field(default=None)
    locked: bool|None = field(default=None)
    reminders: dict|None = field(default=None)
    source: dict|None = field(default=None)
    attachments: List[dict]|None = field(default=None)
    eventType: str|None = field(default=None)

    def __post_init__(self) -> None:
        self.fixup()

    def fixup(self) -> None:
        if self.created is not None and not isinstance(self.created, datetime.datetime):
            self.created = datetime.datetime.fromisoformat(str(self.created)).replace(microsecond=0)
        if self.updated is not None and not isinstance(self.updated, datetime.datetime):
            self.updated = datetime.datetime.fromisoformat(str(self.updated)).replace(microsecond=0)
        if self.start is not None and not isinstance(self.start, EventDateTime):
            self.start = EventDateTime.from_response(dict(self.start))
        if self.end is not None and not isinstance(self.end, EventDateTime):
            self.end = EventDateTime.from_response(dict(self.end))
        if self.originalStartTime is not None and not isinstance(self.originalStartTime, EventDateTime):
            self.originalStartTime = EventDateTime.from_response(dict(self.originalStartTime))

    def __bool__(self) -> bool:
        return self.kind is not None and self.kind == "calendar#event" and bool(self.etag) and bool(self.id)

    def __str__(self) -> str:
        ret = "<empty>"
        if self:
            ret = f"{self.summary}<{self.id}>"
            if self.start:
                ret += f"({str(self.start)}-->{str(self.end)})"
        return ret

    def all_day(self) -> bool:
        """
        Is this an all-day event?  That is, is it just date components and not datetime?
        """
        return bool(self.start) and self.start.date is not None and self.end.date is not None

    def to_base(self) -> dict:
        """
        Convert any date/datetime/ZoneInfo into the strings needed by GWS.
        """
        self.fixup()
        b = asdict(self)
        for k in ['start', 'end', 'originalStartTime']:
            v = getattr(self, k)
            b[k] = v.to_base() if v else None
        for k in ['created', 'updated']:
            v = getattr(self, k)
            b[k] = v.isoformat() if v else None
        return b

    @staticmethod
    def _normalize_time(value: str|datetime.datetime, tz: ZoneInfo|None) -> str:
        """
        timeMin and timeMax MUST carry a tz offset so naive values are
        taken to be in tz, or UTC.
        """
        tm = value if isinstance(value, datetime.datetime) else datetime.datetime.fromisoformat(str(value))
        tm = tm.replace(microsecond=0)
        if tm.tzinfo is None:
            tm = tm.replace(tzinfo=tz if tz is not None else ZoneInfo('UTC'))
        return tm.isoformat()

    @staticmethod
    def list(calendar_id: str = "primary", max_results: int = 0, **kwargs) -> List[Self]:
        """
        https://developers.google.com/calendar/api/v3/reference/events/list
        kwargs are the query parameters of the method, see the documentation.
        With max_results only that many events are returned.
        """
        method = _get_service().events().list
        kwargs.pop('pageToken', None)
        tz = None
        if kwargs.get('timeZone'):
            tz = kwargs['timeZone'] if isinstance(kwargs['timeZone'], ZoneInfo) else ZoneInfo(str(kwargs['timeZone']))
            kwargs['timeZone'] = str(tz)
        else:
            kwargs.pop('timeZone', None)
        for t in ['timeMin', 'timeMax']:
            if kwargs.get(t):
                kwargs[t] = Event._normalize_time(kwargs[t], tz)
            else:
                kwargs.pop(t, None)
        if max_results > 0:
            kwargs['maxResults'] = max_results
        log_api_call("list", "events", calendarId=calendar_id, **kwargs)
        events = []
        page_token = None
        while True:
            response = method(calendarId=str(calendar_id), pageToken=page_token, **kwargs).execute()
            for e in response.get('items', []):
                events.append(Event.from_response(e))
            page_token = response.get('nextPageToken', None)
            if not page_token or (max_results > 0 and len(events) >= max_results):
                break
        return events[:max_results] if max_results > 0 else events

    @staticmethod
    def get(calendar_id: str, event_id: str|Self) -> Self:
        """
        https://developers.google.com/calendar/api/v3/reference/events/get
        """
        eid = event_id.id if isinstance(event_id, Event) else str(event_id)
        log_api_call("get", "events", calendarId=calendar_id, eventId=eid)
        response = _get_service().events().get(calendarId=str(calendar_id), eventId=eid).execute()
        return Event.from_response(response)

    @staticmethod
    def insert(calendar_id: str, event: Self|dict, sendUpdates: str = "") -> Self:
        """
        https://developers.google.com/calendar/api/v3/reference/events/insert
        """
        request = {"calendarId": str(calendar_id), "body": event.trim() if isinstance(event, Event) else event}
        if sendUpdates:
            if sendUpdates not in SEND_UPDATES:
                raise ValueError(f"Invalid Event::insert() sendUpdates value: {sendUpdates}")
            request['sendUpdates'] = sendUpdates
        log_api_call("insert", "events", calendarId=calendar_id)
        response = _get_service().events().insert(**request).execute()
        # if an Event was passed in, fill that out, otherwise return a new object
        if isinstance(event, Event):
            event.update_fields(**response)
            return event
        return Event.from_response(response)

    @staticmethod
    def update(calendar_id: str, event: Self|dict, sendUpdates: str = "") -> Self:
        """
        https://developers.google.com/calendar/api/v3/reference/events/update
        The event replaces the stored one entirely, so start from Event.get().
        """
        body = event.trim() if isinstance(event, Event) else dict(event)
        request = {"calendarId": str(calendar_id), "eventId": body['id'], "body": body}
        if sendUpdates:
            if sendUpdates not in SEND_UPDATES:
                raise ValueError(f"Invalid Event::update() sendUpdates value: {sendUpdates}")
            request['sendUpdates'] = sendUpdates
        log_api_call("update", "events", calendarId=calendar_id, eventId=body['id'])
        response = _get_service().events().update(**request).execute()
        if isinstance(event, Event):
            event.update_fields(**response)
            return event
        return Event.from_response(response)


def recurrence_rule(frequency: str, count: int) -> List[str]|None:
    """A single occurrence has no rule."""
    if count == 1:
        return None
    return [f"RRULE:FREQ={frequency.upper()};COUNT={count}"]


def event_time(value: str) -> EventDateTime:
    """
    Anything longer than a plain YYYY-MM-DD is a timed event,
    otherwise it's all-day.
    """
    if len(value) > 10:
        return EventDateTime(dateTime=value)
    return EventDateTime(date=value)


def apply_event_options(event: Event, summary: str = "", start: str = "", end: str = "",
                        attendees: List[str]|None = None, description: str = "", location: str = "",
                        count: int = 1, frequency: str = "daily") -> Event:
    """
    Fill in an event from command options.  Options left empty keep whatever
    the event already has.
    """
    if summary:
        event.summary = summary
    if start:
        event.start = event_time(start)
        event.end = event_time(end or start)
    if attendees:
        event.attendees = [{"email": a} for a in attendees]
    if location:
        event.location = location
    if description:
        event.description = description
    rule = recurrence_rule(frequency, count)
    if rule:
        event.recurrence = rule
    return event
