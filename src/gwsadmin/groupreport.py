"""
Group membership report: for every group, who owns it and whether it has
inactive, external or former-employee members.

Each group needs one members call plus a user lookup per member, so groups
are classified concurrently on a bounded thread pool.  Workers share nothing
but the read-only directory client; results are collected as they finish.
"""
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, List
import logging

from .directory import Group, Member, User, FORMER_EMPLOYEES_OU, STAFF_OUS

logger = logging.getLogger(__name__)

MAX_WORKERS = 10

MARK_ACTIVE = "✓"
MARK_FORMER = "x"
MARK_GROUP = "✛"


@dataclass
class GroupInfo():
    name: str = field(default="", metadata={"name": "Name"})
    description: str = field(default="", metadata={"name": "Description"})
    email: str = field(default="", metadata={"name": "Email"})
    owners: str = field(default="", metadata={"name": "Owners"})
    inactive_members: bool = field(default=False, metadata={"name": "Inactive Members"})
    external_members: bool = field(default=False, metadata={"name": "External Members"})
    former_employees: bool = field(default=False, metadata={"name": "Former Employees"})


HEADERS = ["Name", "Description", "Email", "Owners", "Inactive Members", "External Members", "Former Employees"]


def classify_group(group: Group, domain: str,
                   list_members: Callable[[str], List[Member]] = Member.list,
                   get_user: Callable[[str], User] = User.get) -> GroupInfo:
    """
    Members outside the domain are external.  Anyone with a role other than
    MEMBER is an owner.  User members that aren't ACTIVE make the group
    'inactive', their org unit decides staff, external or former employee.
    """
    info = GroupInfo(name=group.name or "", description=group.description or "", email=group.email or "")
    owners = []
    for m in list_members(group.id or group.email):
        email = m.email or ""
        if domain and not email.endswith("@" + domain):
            info.external_members = True
            continue
        if m.role != "MEMBER":
            owners.append(email)
        if m.type == "USER":
            if m.status != "ACTIVE":
                info.inactive_members = True
            ou = get_user(email).orgUnitPath
            if ou not in STAFF_OUS:
                info.external_members = True
            if ou == FORMER_EMPLOYEES_OU:
                info.former_employees = True
    info.owners = ",".join(owners)
    return info


def collect_group_info(groups: List[Group], domain: str, workers: int = MAX_WORKERS,
                       classify: Callable[[Group, str], GroupInfo] = classify_group) -> List[GroupInfo]:
    """
    Classify every group with at most `workers` in flight.  Returns once all
    groups are done, in completion order.  The first failure is raised after
    the pool has drained.
    """
    results = []
    with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="group-info") as pool:
        futures = {pool.submit(classify, g, domain): g for g in groups}
        for f in as_completed(futures):
            g = futures[f]
            logger.debug("classified group %s", g.email)
            results.append(f.result())
    return results


@dataclass
class MemberMark():
    email: str = field(default="", metadata={"name": "Email"})
    mark: str = field(default="", metadata={"name": "Status"})


def member_marks(group_email: str,
                 list_members: Callable[[str], List[Member]] = Member.list,
                 get_user: Callable[[str], User] = User.get) -> List[MemberMark]:
    """
    Members of one group tagged as active user, former employee or nested group.
    Other member types (customer, external) are left out.
    """
    marks = []
    for m in list_members(group_email):
        if m.type == "GROUP":
            marks.append(MemberMark(m.email or "", MARK_GROUP))
        elif m.type == "USER":
            former = get_user(m.email).orgUnitPath == FORMER_EMPLOYEES_OU
            marks.append(MemberMark(m.email or "", MARK_FORMER if former else MARK_ACTIVE))
    return marks
