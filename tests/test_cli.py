from datetime import datetime, timedelta, timezone
import json
import os
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError
from typer.testing import CliRunner

from gwsadmin import __version__, calendar, reports
from gwsadmin.access import gws
from gwsadmin.cache import CacheEntry
from gwsadmin.cli import main
from gwsadmin.datatransfer import DataTransfer

runner = CliRunner()

USERS = {"users": [
    {"primaryEmail": "a@example.com", "name": {"fullName": "Ann Able"}, "isAdmin": True, "orgUnitPath": "/Sales"},
    {"primaryEmail": "z@example.com", "name": {"fullName": "Zed Gone"}, "isAdmin": False,
     "orgUnitPath": "/Former employees"},
]}


def invoke(*args, input=None):
    return runner.invoke(main.app, list(args), input=input)


def not_found():
    return HttpError(httplib2.Response({"status": 404}), b'{"error": {"message": "Resource Not Found: userKey"}}')


@pytest.fixture
def cli(clean_env, directory_service):
    return directory_service


def test_version(clean_env):
    result = invoke("version")
    assert(result.exit_code == 0)
    assert(result.output == f"gwsadmin version {__version__}\n")
    result = invoke("version", "--short")
    assert(result.output == f"{__version__}\n")


def test_help(clean_env):
    result = invoke("--help")
    assert(result.exit_code == 0)
    for name in ["user", "group", "group-settings", "calendar", "ou", "alias", "cal-resource", "audit",
                 "transfer", "cache", "config", "init", "version"]:
        assert(name in result.output)


def test_invalid_format(clean_env):
    result = invoke("--format", "xml", "version")
    assert(result.exit_code == 1)
    assert("invalid output format 'xml'" in result.output)


def test_user_list_csv_is_cached(clean_env, cli):
    execute = cli.users.return_value.list.return_value.execute
    execute.return_value = USERS
    result = invoke("--domain", "example.com", "--format", "csv", "user", "list")
    assert(result.exit_code == 0)
    assert(result.output == ("Name,Email,Admin,OrgUnitPath\n"
                             "Ann Able,a@example.com,true,/Sales\n"
                             "Zed Gone,z@example.com,false,/Former employees\n"))
    assert((clean_env / "cache" / "users-example.com-default.json").exists())

    result = invoke("--domain", "example.com", "--format", "csv", "user", "list")
    assert(result.exit_code == 0)
    assert(execute.call_count == 1)

    result = invoke("--domain", "example.com", "--no-cache", "--format", "csv", "user", "list")
    assert(execute.call_count == 2)


def test_cache_ttl_flag_expires_older_entries(clean_env, cli):
    cache_dir = clean_env / "cache"
    cache_dir.mkdir()
    entry = CacheEntry(timestamp=datetime.now(timezone.utc) - timedelta(minutes=10), ttl=900,
                       data=[{"primaryEmail": "stale@example.com"}])
    (cache_dir / "users-example.com-default.json").write_text(entry.to_json())
    execute = cli.users.return_value.list.return_value.execute
    execute.return_value = USERS

    result = invoke("--domain", "example.com", "--format", "csv", "-q", "user", "list")
    assert(result.exit_code == 0)
    assert(execute.call_count == 0)
    assert("stale@example.com" in result.output)

    result = invoke("--domain", "example.com", "--cache-ttl", "1m", "--format", "csv", "-q", "user", "list")
    assert(result.exit_code == 0)
    assert(execute.call_count == 1)
    assert("stale@example.com" not in result.output)
    assert("a@example.com" in result.output)


def test_user_list_disabled_only(cli):
    cli.users.return_value.list.return_value.execute.return_value = USERS
    result = invoke("--no-cache", "--format", "csv", "-q", "user", "list", "--disabled-only")
    assert(result.exit_code == 0)
    assert(result.output == "Zed Gone,z@example.com,false,/Former employees\n")


def test_user_get_json(cli):
    cli.users.return_value.get.return_value.execute.return_value = USERS["users"][0]
    result = invoke("--format", "json", "user", "list", "a@example.com")
    assert(result.exit_code == 0)
    assert(json.loads(result.output)["primaryEmail"] == "a@example.com")
    assert(cli.users.return_value.get.call_args.kwargs == {"userKey": "a@example.com", "projection": "full"})


def test_user_create(cli):
    cli.users.return_value.insert.return_value.execute.return_value = {"primaryEmail": "new@example.com"}
    result = invoke("--domain", "example.com", "user", "create", "new@example.com",
                    "-e", "me@home.net", "-f", "New", "-l", "Person", "-g", "eng")
    assert(result.exit_code == 0)
    assert("Username: new@example.com" in result.output)
    assert("Password: " in result.output)
    body = cli.users.return_value.insert.call_args.kwargs["body"]
    assert(body["changePasswordAtNextLogin"])
    assert(body["name"]["fullName"] == "New Person")
    assert(cli.members.return_value.insert.call_args.kwargs["groupKey"] == "eng@example.com")


def test_user_create_invalid_email(cli):
    result = invoke("user", "create", "not-an-email", "-e", "me@home.net", "-f", "A", "-l", "B")
    assert(result.exit_code == 1)
    assert("Error: invalid email format: not-an-email" in result.output)
    assert(not cli.users.return_value.insert.called)


def test_user_update_fields(cli):
    cli.users.return_value.patch.return_value.execute.return_value = {"primaryEmail": "a@example.com"}
    result = invoke("user", "update", "a@example.com", "--dept", "Engineering", "--title", "Dev",
                    "--phone", "mobile:555-123-4567")
    assert(result.exit_code == 0)
    body = cli.users.return_value.patch.call_args.kwargs["body"]
    assert(body["organizations"] == [{"primary": True, "department": "Engineering", "title": "Dev"}])
    assert(body["phones"] == [{"type": "mobile", "value": "555-123-4567"}])


def test_user_update_from_stdin(cli):
    cli.users.return_value.patch.return_value.execute.return_value = {"primaryEmail": "a@example.com"}
    result = invoke("user", "update", "a@example.com", input='{"orgUnitPath": "/Sales"}')
    assert(result.exit_code == 0)
    assert(cli.users.return_value.patch.call_args.kwargs["body"] == {"orgUnitPath": "/Sales"})

    result = invoke("user", "update", "a@example.com", input="[1, 2]")
    assert(result.exit_code == 1)


def test_user_suspend_needs_confirmation(cli):
    result = invoke("user", "suspend", "a@example.com")
    assert(result.exit_code == 1)
    assert("refusing to suspend a@example.com" in result.output)
    assert(not cli.users.return_value.patch.called)


def test_user_suspend(cli):
    cli.users.return_value.patch.return_value.execute.return_value = {
        "primaryEmail": "a@example.com", "name": {"givenName": "Ann", "familyName": "Able"},
        "suspended": True, "suspensionReason": "ADMIN"}
    result = invoke("user", "suspend", "a@example.com", "--reason", "left", "--force")
    assert(result.exit_code == 0)
    assert("Successfully suspended user account" in result.output)
    assert("  Suspended: true" in result.output)
    assert(cli.users.return_value.patch.call_args.kwargs["body"] == {"suspended": True,
                                                                      "suspensionReason": "left"})
    result = invoke("-y", "user", "unsuspend", "a@example.com")
    assert(result.exit_code == 0)
    assert(cli.users.return_value.patch.call_args.kwargs["body"] == {"suspended": False})


def test_group_list_report(cli):
    cli.groups.return_value.list.return_value.execute.return_value = {
        "groups": [{"id": "g1", "email": "eng@example.com", "name": "Eng"}]}
    cli.members.return_value.list.return_value.execute.return_value = {
        "members": [{"email": "dev@example.com", "role": "OWNER", "type": "USER", "status": "ACTIVE"}]}
    cli.users.return_value.get.return_value.execute.return_value = {"primaryEmail": "dev@example.com",
                                                                     "orgUnitPath": "/Engineering"}
    result = invoke("--domain", "example.com", "--format", "csv", "group", "list")
    assert(result.exit_code == 0)
    assert(result.output == ("Name,Description,Email,Owners,Inactive Members,External Members,Former Employees\n"
                             "Eng,,eng@example.com,dev@example.com,false,false,false\n"))


def test_group_list_needs_domain(cli):
    result = invoke("group", "list")
    assert(result.exit_code == 1)
    assert("no domain configured" in result.output)


def test_group_members(cli):
    cli.members.return_value.list.return_value.execute.return_value = {
        "members": [{"email": "sub@example.com", "type": "GROUP"}]}
    result = invoke("--domain", "example.com", "--format", "csv", "group", "list", "eng", "--get-members")
    assert(result.exit_code == 0)
    assert(result.output == "Email,Status\nsub@example.com,✛\n")
    assert(cli.members.return_value.list.call_args.kwargs["groupKey"] == "eng@example.com")


def test_group_settings_update(clean_env, monkeypatch):
    svc = MagicMock()
    monkeypatch.setattr(gws, "get_service", lambda name, version: svc)
    svc.groups.return_value.patch.return_value.execute.return_value = {"email": "eng@example.com"}
    result = invoke("--domain", "example.com", "group-settings", "update", "eng",
                    "--who-can-join", "INVITED_CAN_JOIN", "--archive-only", "false")
    assert(result.exit_code == 0)
    assert(svc.groups.return_value.patch.call_args.kwargs["body"] == {"whoCanJoin": "INVITED_CAN_JOIN",
                                                                      "archiveOnly": "false"})
    assert("  whoCanJoin" in result.output)

    result = invoke("--domain", "example.com", "group-settings", "update", "eng")
    assert(result.exit_code == 1)
    assert("no settings specified" in result.output)


def test_calendar_create(clean_env, monkeypatch):
    svc = MagicMock()
    monkeypatch.setattr(calendar, "_get_service", lambda: svc)
    insert = svc.events.return_value.insert
    insert.return_value.execute.return_value = {"kind": "calendar#event", "etag": "e", "id": "ev1",
                                                "htmlLink": "https://calendar.google.com/ev1"}
    result = invoke("calendar", "create", "cal@example.com", "-s", "Sync",
                    "-b", "2024-10-08T10:00:00+00:00", "-e", "2024-10-08T10:30:00+00:00", "-c", "3")
    assert(result.exit_code == 0)
    assert("event URL: https://calendar.google.com/ev1" in result.output)
    body = insert.call_args.kwargs["body"]
    assert(body["location"] == "The Matrix")
    assert(body["recurrence"] == ["RRULE:FREQ=DAILY;COUNT=3"])
    assert(body["start"] == {"dateTime": "2024-10-08T10:00:00+00:00"})


def test_calendar_bad_frequency(clean_env):
    result = invoke("calendar", "create", "cal@example.com", "-s", "x", "-b", "2024-10-08", "-e", "2024-10-08",
                    "-f", "hourly")
    assert(result.exit_code == 1)
    assert("invalid recurrence frequency" in result.output)


def test_ou_list_plain(cli):
    cli.orgunits.return_value.list.return_value.execute.return_value = {"organizationUnits": [
        {"name": "EMEA", "orgUnitPath": "/Sales/EMEA", "orgUnitId": "id2", "parentOrgUnitPath": "/Sales"},
        {"name": "Sales", "orgUnitPath": "/Sales", "orgUnitId": "id1", "parentOrgUnitPath": "/"},
    ]}
    result = invoke("--domain", "example.com", "ou", "list")
    assert(result.exit_code == 0)
    assert("Found 2 organizational unit(s):" in result.output)
    assert("\nSales\n  Path: /Sales\n" in result.output)
    assert("\n  EMEA\n    Path: /Sales/EMEA\n" in result.output)
    assert(result.output.index("Sales\n") < result.output.index("EMEA"))


def test_ou_create_and_delete(cli):
    cli.orgunits.return_value.insert.return_value.execute.return_value = {
        "name": "EMEA", "orgUnitPath": "/Sales/EMEA", "orgUnitId": "id2", "parentOrgUnitPath": "/Sales"}
    result = invoke("ou", "create", "/Sales/EMEA", "--description", "Europe")
    assert(result.exit_code == 0)
    assert(cli.orgunits.return_value.insert.call_args.kwargs["body"] == {
        "name": "EMEA", "parentOrgUnitPath": "/Sales", "description": "Europe"})

    result = invoke("ou", "create", "Sales")
    assert(result.exit_code == 1)
    assert("must start with '/'" in result.output)

    result = invoke("ou", "delete", "/Sales/EMEA")
    assert(result.exit_code == 1)
    assert(not cli.orgunits.return_value.delete.called)
    result = invoke("ou", "delete", "/Sales/EMEA", "--force")
    assert(result.exit_code == 0)
    assert("Successfully deleted organizational unit: /Sales/EMEA" in result.output)


def test_ou_update(cli):
    result = invoke("ou", "update", "/Sales")
    assert(result.exit_code == 1)
    assert("no update fields specified" in result.output)
    result = invoke("ou", "update", "/Sales", "--block-inheritance", "maybe")
    assert(result.exit_code == 1)
    cli.orgunits.return_value.patch.return_value.execute.return_value = {"name": "Sales", "orgUnitPath": "/Sales"}
    result = invoke("ou", "update", "/Sales", "--block-inheritance", "TRUE")
    assert(result.exit_code == 0)
    assert(cli.orgunits.return_value.patch.call_args.kwargs["body"] == {"blockInheritance": True})


def test_alias_list(cli):
    cli.users.return_value.aliases.return_value.list.return_value.execute.return_value = {
        "aliases": [{"alias": "ann@example.com"}, {"alias": "a.able@example.com"}]}
    result = invoke("--format", "csv", "alias", "list", "a@example.com")
    assert(result.exit_code == 0)
    assert("Alias\nann@example.com\na.able@example.com\n" in result.output)
    assert("Total: 2 alias(es)" in result.output)


def test_alias_api_error_hints(cli):
    cli.users.return_value.aliases.return_value.list.return_value.execute.side_effect = not_found()
    result = invoke("alias", "list", "a@example.com")
    assert(result.exit_code == 1)
    assert("Error: list aliases: Resource Not Found: userKey" in result.output)
    assert("Common reasons for failure:" in result.output)
    assert("  - user does not exist" in result.output)


def test_alias_remove(cli):
    result = invoke("alias", "remove", "a@example.com", "ann@example.com")
    assert(result.exit_code == 1)
    result = invoke("alias", "remove", "a@example.com", "ann@example.com", "--force")
    assert(result.exit_code == 0)
    assert(cli.users.return_value.aliases.return_value.delete.call_args.kwargs == {
        "userKey": "a@example.com", "alias": "ann@example.com"})


def test_cal_resource_list(cli):
    resources = cli.resources.return_value
    resources.calendars.return_value.list.return_value.execute.return_value = {"items": [
        {"resourceId": "r1", "resourceName": "Big Room", "resourceType": "ROOM", "buildingId": "b1",
         "capacity": 10, "resourceEmail": "r1@resource.calendar.google.com"},
        {"resourceId": "p1", "resourceName": "Projector", "resourceType": "EQUIPMENT"},
    ]}
    resources.buildings.return_value.list.return_value.execute.return_value = {
        "buildings": [{"buildingId": "b1", "buildingName": "HQ"}]}
    result = invoke("--no-cache", "--format", "csv", "cal-resource", "list", "--type", "room")
    assert(result.exit_code == 0)
    assert("Name,Email,ID,Type,Building,Floor,Capacity,Description\n" in result.output)
    assert("Big Room,r1@resource.calendar.google.com,r1,ROOM,HQ (b1),,10,\n" in result.output)
    assert("Projector" not in result.output)


def test_cal_resource_create_and_update(cli):
    cals = cli.resources.return_value.calendars.return_value
    cals.insert.return_value.execute.return_value = {"resourceId": "r1", "resourceName": "Room",
                                                     "resourceType": "ROOM"}
    result = invoke("cal-resource", "create", "r1", "--name", "Room", "--capacity", "8")
    assert(result.exit_code == 0)
    assert(cals.insert.call_args.kwargs["body"] == {"resourceId": "r1", "resourceName": "Room",
                                                    "resourceType": "ROOM", "capacity": 8})
    result = invoke("cal-resource", "create", "r2", "--name", "Thing", "--type", "spaceship")
    assert(result.exit_code == 1)

    cals.get.return_value.execute.return_value = {"resourceId": "r1", "resourceName": "Room",
                                                  "resourceType": "ROOM", "capacity": 8}
    cals.update.return_value.execute.return_value = {"resourceId": "r1", "resourceName": "Room", "floorName": "2"}
    result = invoke("cal-resource", "update", "r1", "--floor", "2")
    assert(result.exit_code == 0)
    assert(cals.update.call_args.kwargs["body"]["floorName"] == "2")
    assert(cals.update.call_args.kwargs["body"]["capacity"] == 8)


def test_audit_export_csv(clean_env, monkeypatch):
    svc = MagicMock()
    monkeypatch.setattr(reports, "_get_service", lambda: svc)
    svc.activities.return_value.list.return_value.execute.return_value = {"items": [{
        "id": {"time": "2024-10-08T13:04:05Z", "applicationName": "login"},
        "actor": {"email": "admin@example.com"}, "ipAddress": "10.0.0.1",
        "events": [{"name": "login_success"}]}]}
    out = clean_env / "audit.csv"
    result = invoke("audit", "export", "--app", "login", "--start-time", "2024-10-08T00:00:00Z",
                    "--end-time", "2024-10-09T00:00:00Z", "-o", "csv", "-f", str(out))
    assert(result.exit_code == 0)
    assert(out.read_text() == ("Timestamp,Actor,Event,IP Address,Application\n"
                               "2024-10-08 13:04:05 UTC,admin@example.com,login_success,10.0.0.1,login\n"))
    kwargs = svc.activities.return_value.list.call_args.kwargs
    assert(kwargs["startTime"] == "2024-10-08T00:00:00Z")


def test_audit_export_validation(clean_env):
    result = invoke("audit", "export", "--app", "login", "-o", "xml")
    assert(result.exit_code == 1)
    result = invoke("audit", "export", "--app", "login", "-f", "/etc/audit.json")
    assert(result.exit_code == 1)
    assert("credential path must be under" in result.output)
    result = invoke("audit", "export", "--app", "login", "--start-time", "2024-10-09T00:00:00Z",
                    "--end-time", "2024-10-08T00:00:00Z")
    assert(result.exit_code == 1)
    assert("end-time must be after start-time" in result.output)


def test_transfer(cli, monkeypatch):
    cli.users.return_value.get.return_value.execute.return_value = {"id": "42", "primaryEmail": "x@example.com"}
    calls = []

    def fake_transfer(from_id, to_id):
        calls.append((from_id, to_id))
        return DataTransfer(id="t1", overallTransferStatusCode="completed")

    monkeypatch.setattr("gwsadmin.cli.transfer.transfer_documents", fake_transfer)
    result = invoke("transfer", "--from", "old@example.com", "--to", "new@example.com")
    assert(result.exit_code == 0)
    assert("document transfer: old@example.com --> new@example.com" in result.output)
    assert("transfer complete" in result.output)
    assert(calls == [("42", "42")])


def test_cache_status_and_clear(clean_env):
    cache_dir = clean_env / "cache"
    cache_dir.mkdir()
    (cache_dir / "users-example.com-default.json").write_text("x" * 10)
    (cache_dir / "groups-example.com-default.json").write_text("x" * 20)

    result = invoke("--format", "json", "cache", "status")
    assert(result.exit_code == 0)
    status = json.loads(result.output)
    assert(status["entry_count"] == 2)
    assert(status["total_size_bytes"] == 30)
    assert(status["total_size"] == "30 B")
    assert(status["default_ttl"] == "15m0s")
    assert(status["oldest_entry"].endswith("seconds ago"))

    result = invoke("cache", "clear", "users")
    assert(result.exit_code == 0)
    assert(sorted(os.listdir(cache_dir)) == ["groups-example.com-default.json"])
    result = invoke("cache", "clear", "everything")
    assert(result.exit_code == 1)
    result = invoke("cache", "clear", "--all")
    assert(result.exit_code == 0)
    assert(os.listdir(cache_dir) == [])


def test_cache_status_disabled(clean_env):
    result = invoke("--no-cache", "cache", "status")
    assert(result.exit_code == 0)
    assert("Cache Status" in result.output)
    assert("Enabled:       false" in result.output)
    assert("Caching is currently disabled" in result.output)


def test_config_show(clean_env):
    result = invoke("--domain", "example.com", "--cache-ttl", "1h", "--format", "json", "config", "show")
    assert(result.exit_code == 0)
    shown = json.loads(result.output)
    assert(shown["domain"] == "example.com")
    assert(shown["cache_ttl"] == "1h0m0s")
    assert(shown["format"] == "json")


def test_config_validate(clean_env):
    secret = clean_env / "client_secret.json"
    args = ["--domain", "example.com", "--client-secret", str(secret), "--token-file", str(clean_env / "tok.json"),
            "config", "validate"]
    result = invoke(*args)
    assert(result.exit_code == 1)
    assert("Client secret file not found" in result.output)

    secret.write_text("{}")
    os.chmod(secret, 0o600)
    result = invoke(*args)
    assert(result.exit_code == 0)
    assert("Configuration is valid with no errors or warnings" in result.output)


def test_config_file_used(clean_env):
    path = clean_env / "gwsadmin.yaml"
    path.write_text("domain: file.example.com\nformat: yaml\n")
    result = invoke("--config", str(path), "config", "show")
    assert(result.exit_code == 0)
    assert("domain: file.example.com" in result.output)
    result = invoke("--config", str(clean_env / "missing.yaml"), "config", "show")
    assert(result.exit_code == 1)
    assert("config file not found" in result.output)
