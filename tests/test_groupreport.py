import threading
import time

import pytest

from gwsadmin.directory import Group, Member, User, FORMER_EMPLOYEES_OU
from gwsadmin.groupreport import (GroupInfo, HEADERS, MARK_ACTIVE, MARK_FORMER, MARK_GROUP, classify_group,
                                  collect_group_info, member_marks)
from gwsadmin.output import resolve_row

DOMAIN = "example.com"

MEMBERS = {
    "eng@example.com": [
        Member(email="boss@example.com", role="OWNER", type="USER", status="ACTIVE"),
        Member(email="dev@example.com", role="MEMBER", type="USER", status="ACTIVE"),
        Member(email="gone@example.com", role="MEMBER", type="USER", status="SUSPENDED"),
        Member(email="friend@gmail.com", role="MEMBER", type="USER", status="ACTIVE"),
        Member(email="sub@example.com", role="MEMBER", type="GROUP", status="ACTIVE"),
    ],
    "sales@example.com": [
        Member(email="rep@example.com", role="MANAGER", type="USER", status="ACTIVE"),
    ],
}

OUS = {
    "boss@example.com": "/Engineering",
    "dev@example.com": "/Engineering",
    "gone@example.com": FORMER_EMPLOYEES_OU,
    "rep@example.com": "/Sales",
}


def list_members(group_key):
    return MEMBERS.get(group_key, [])


def get_user(email):
    return User(primaryEmail=email, orgUnitPath=OUS.get(email, "/Contractors"))


def test_classify_group():
    g = Group(email="eng@example.com", name="Eng", description="Engineering")
    info = classify_group(g, DOMAIN, list_members, get_user)
    assert(info.owners == "boss@example.com")
    assert(info.inactive_members)
    assert(info.external_members)
    assert(info.former_employees)
    assert(resolve_row(info, HEADERS) == ["Eng", "Engineering", "eng@example.com", "boss@example.com",
                                          "true", "true", "true"])


def test_classify_clean_group():
    info = classify_group(Group(email="sales@example.com", name="Sales"), DOMAIN, list_members, get_user)
    assert(info == GroupInfo(name="Sales", email="sales@example.com", owners="rep@example.com"))


def test_member_outside_staff_ous_is_external():
    MEMBERS["contract@example.com"] = [Member(email="c@example.com", role="MEMBER", type="USER", status="ACTIVE")]
    try:
        info = classify_group(Group(email="contract@example.com"), DOMAIN, list_members, get_user)
        assert(info.external_members)
        assert(not info.former_employees)
    finally:
        del MEMBERS["contract@example.com"]


def test_collect_bounded():
    groups = [Group(email=f"g{i}@example.com") for i in range(25)]
    lock = threading.Lock()
    active = [0]
    peak = [0]

    def classify(group, domain):
        with lock:
            active[0] += 1
            peak[0] = max(peak[0], active[0])
        time.sleep(0.01)
        with lock:
            active[0] -= 1
        return GroupInfo(email=group.email)

    infos = collect_group_info(groups, DOMAIN, workers=4, classify=classify)
    assert(sorted(i.email for i in infos) == sorted(g.email for g in groups))
    assert(peak[0] <= 4)


def test_collect_raises_worker_error():
    def classify(group, domain):
        raise RuntimeError(group.email)

    with pytest.raises(RuntimeError):
        collect_group_info([Group(email="a@example.com")], DOMAIN, classify=classify)


def test_member_marks():
    marks = member_marks("eng@example.com", list_members, get_user)
    got = {m.email: m.mark for m in marks}
    assert(got["dev@example.com"] == MARK_ACTIVE)
    assert(got["gone@example.com"] == MARK_FORMER)
    assert(got["sub@example.com"] == MARK_GROUP)
