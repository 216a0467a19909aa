from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from gwsadmin import reports
from gwsadmin.errors import ValidationError
from gwsadmin.reports import Activity, parse_time_range

NOW = datetime(2024, 10, 8, 12, 0, 0, tzinfo=timezone.utc)

ACTIVITY = {
    "id": {"time": "2024-10-08T13:04:05.123Z", "applicationName": "login", "uniqueQualifier": "1"},
    "actor": {"email": "admin@example.com"},
    "ipAddress": "10.0.0.1",
    "events": [{"name": "login_success"}, {"name": "other"}],
}


def test_time_range_defaults():
    assert(parse_time_range(now=NOW) == ("2024-10-07T12:00:00Z", "2024-10-08T12:00:00Z"))
    assert(parse_time_range(end="2024-10-02T00:00:00Z") == ("2024-10-01T00:00:00Z", "2024-10-02T00:00:00Z"))


def test_time_range_explicit():
    start, end = parse_time_range("2024-10-01T00:00:00+02:00", "2024-10-01T06:00:00+02:00")
    assert(start == "2024-09-30T22:00:00Z")
    assert(end == "2024-10-01T04:00:00Z")


def test_time_range_invalid():
    with pytest.raises(ValidationError) as e:
        parse_time_range("2024-10-02T00:00:00Z", "2024-10-01T00:00:00Z")
    assert(e.value.message == "end-time must be after start-time")
    with pytest.raises(ValidationError):
        parse_time_range("yesterday", "")


def test_activity_row():
    a = Activity.from_response(ACTIVITY)
    assert(a.timestamp == "2024-10-08 13:04:05 UTC")
    assert(a.row() == {"Timestamp": "2024-10-08 13:04:05 UTC", "Actor": "admin@example.com",
                       "Event": "login_success", "IP Address": "10.0.0.1", "Application": "login"})
    assert(Activity().row()["Event"] == "")


def test_list_validates_application():
    with pytest.raises(ValidationError):
        Activity.list("nonsense")


def test_list_paginates_and_caps(monkeypatch):
    svc = MagicMock()
    monkeypatch.setattr(reports, "_get_service", lambda: svc)
    method = svc.activities.return_value.list
    method.return_value.execute.side_effect = [
        {"items": [ACTIVITY, ACTIVITY], "nextPageToken": "p2"},
        {"items": [ACTIVITY, ACTIVITY]},
    ]
    activities = Activity.list("LOGIN", event_names=["a", "b"], max_results=3)
    assert(len(activities) == 3)
    first = method.call_args_list[0].kwargs
    assert(first["applicationName"] == "login")
    assert(first["userKey"] == "all")
    assert(first["eventName"] == "a,b")
    assert(first["maxResults"] == 3)
    assert(method.call_args_list[1].kwargs["pageToken"] == "p2")
