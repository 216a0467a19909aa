"""
Admin SDK Directory API resources: users, groups and their members, org units,
user aliases, calendar resources and buildings.

As with calendar.py the API operations are static methods on the dataclass
for the resource they return.  Field names follow the API's JSON so
from_response()/trim() map straight onto request and response bodies.
"""
from dataclasses import dataclass, field
from typing import List, Self
from functools import partial
import secrets

from .resources import GoogleWorkSpaceResourceBase
from .access import gws
from .log import log_api_call
from .validation import validate_phone

_get_service = partial(gws.get_service, "admin", "directory_v1")

CUSTOMER = "my_customer"
FORMER_EMPLOYEES_OU = "/Former employees"
# org units whose members count as staff, anyone else is treated as external
STAFF_OUS = frozenset([
    "/",
    "/Customer Education",
    "/Customer Success",
    "/Engineering",
    "/Marketing",
    "/Product",
    "/Sales",
    "/Sales Engineering",
])

# no 0/O or l to keep the welcome email readable
PASSWORD_ALPHABET = "abcdefghijkmnopqrstuvwxyzABCDEFGHIJKLMNPQRSTUVWXYZ123456789"


def random_password(length: int = 12) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def paginate(method, items_key: str, **kwargs) -> List[dict]:
    """
    Follow nextPageToken until exhausted, returning the concatenated items.
    """
    kwargs.pop('pageToken', None)
    page_token = None
    items = []
    while True:
        response = method(pageToken=page_token, **kwargs).execute()
        if response:
            items.extend(response.get(items_key, []) or [])
            page_token = response.get('nextPageToken', None)
        if not response or not page_token:
            break
    return items


@dataclass
class User(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/admin-sdk/directory/reference/rest/v1/users#User
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    id: str|None = field(default=None)
    primaryEmail: str|None = field(default=None, metadata={"name": "Email"})
    name: dict|None = field(default=None)
    isAdmin: bool|None = field(default=None, metadata={"name": "Admin"})
    isDelegatedAdmin: bool|None = field(default=None)
    lastLoginTime: str|None = field(default=None)
    creationTime: str|None = field(default=None)
    agreedToTerms: bool|None = field(default=None)
    password: str|None = field(default=None, metadata={"hidden": True})
    hashFunction: str|None = field(default=None, metadata={"hidden": True})
    suspended: bool|None = field(default=None)
    suspensionReason: str|None = field(default=None)
    archived: bool|None = field(default=None)
    changePasswordAtNextLogin: bool|None = field(default=None)
    ipWhitelisted: bool|None = field(default=None)
    emails: List[dict]|None = field(default=None)
    externalIds: List[dict]|None = field(default=None)
    relations: List[dict]|None = field(default=None)
    addresses: List[dict]|None = field(default=None)
    organizations: List[dict]|None = field(default=None)
    phones: List[dict]|None = field(default=None)
    languages: List[dict]|None = field(default=None)
    aliases: List[str]|None = field(default=None)
    nonEditableAliases: List[str]|None = field(default=None)
    customerId: str|None = field(default=None)
    orgUnitPath: str|None = field(default=None, metadata={"name": "OrgUnitPath"})
    isMailboxSetup: bool|None = field(default=None)
    isEnrolledIn2Sv: bool|None = field(default=None)
    isEnforcedIn2Sv: bool|None = field(default=None)
    includeInGlobalAddressList: bool|None = field(default=None)
    thumbnailPhotoUrl: str|None = field(default=None)
    customSchemas: dict|None = field(default=None)
    recoveryEmail: str|None = field(default=None)
    recoveryPhone: str|None = field(default=None)

    def __bool__(self) -> bool:
        return bool(self.primaryEmail)

    def __str__(self) -> str:
        if self:
            return f"{self.full_name}<{self.primaryEmail}>"
        return "<empty>"

    @property
    def full_name(self) -> str:
        return (self.name or {}).get("fullName", "")

    def summary(self) -> dict:
        """The short listing row."""
        return {"Name": self.full_name, "Email": self.primaryEmail,
                "Admin": bool(self.isAdmin), "OrgUnitPath": self.orgUnitPath}

    @staticmethod
    def list(customer: str = CUSTOMER, **kwargs) -> List[Self]:
        """
        https://developers.google.com/admin-sdk/directory/reference/rest/v1/users/list
        All users of the account, following pagination.
        """
        log_api_call("list", "users", customer=customer, **kwargs)
        method = _get_service().users().list
        return [User.from_response(u) for u in paginate(method, 'users', customer=customer, **kwargs)]

    @staticmethod
    def get(user_key: str, projection: str = "full") -> Self:
        log_api_call("get", "users", userKey=user_key, projection=projection)
        response = _get_service().users().get(userKey=user_key, projection=projection).execute()
        return User.from_response(response)

    @staticmethod
    def insert(user: Self|dict) -> Self:
        body = user.trim() if isinstance(user, User) else dict(user)
        log_api_call("insert", "users", primaryEmail=body.get('primaryEmail'))
        response = _get_service().users().insert(body=body).execute()
        return User.from_response(response)

    @staticmethod
    def patch(user_key: str, body: Self|dict) -> Self:
        """
        Partial update.  With a dict body, None values are sent as JSON null
        which clears the field upstream.
        """
        b = body.trim() if isinstance(body, User) else dict(body)
        log_api_call("patch", "users", userKey=user_key, fields=",".join(b.keys()))
        response = _get_service().users().patch(userKey=user_key, body=b).execute()
        return User.from_response(response)

    @staticmethod
    def sign_out(user_key: str) -> None:
        """Sign out of all web and device sessions and reset sign-in cookies."""
        log_api_call("signOut", "users", userKey=user_key)
        _get_service().users().signOut(userKey=user_key).execute()


def user_name(first: str, last: str) -> dict:
    return {"givenName": first, "familyName": last, "fullName": f"{first} {last}"}


def parse_phones(value: str) -> List[dict]:
    """
    'mobile:555-123-4567;work:555-765-4321' -> phone entries.
    A number without a type prefix is a work number.
    """
    phones = []
    for p in value.split(";"):
        p = p.strip()
        if not p:
            continue
        number = validate_phone(p)
        ptype = p.split(":", 1)[0].strip() if ":" in p else "work"
        phones.append({"type": ptype, "value": number})
    return phones


def manager_relation(manager_email: str) -> List[dict]:
    return [{"type": "manager", "value": manager_email}]


def address_entry(address: str) -> List[dict]:
    return [{"formatted": address}]


def organization_entry(department: str = "", title: str = "") -> List[dict]:
    o = {"primary": True}
    if department:
        o["department"] = department
    if title:
        o["title"] = title
    return [o]


def employee_id_entry(employee_id: str) -> List[dict]:
    return [{"type": "organization", "value": employee_id}]


def employee_type_schema(employee_type: str) -> dict:
    """
    The Employee_Type custom schema has one multi-valued field per type,
    set to 'Yes' on the one that applies.
    """
    contractor = employee_type.lower() == "contractor"
    return {"Employee_Type": {
        "Staff": [{"type": "work", "value": "" if contractor else "Yes"}],
        "Contractor": [{"type": "work", "value": "Yes" if contractor else ""}],
    }}


def clear_pii(body: dict) -> dict:
    """Blank recovery details and drop addresses/emails (sent as null)."""
    body.update({"recoveryEmail": "", "recoveryPhone": "", "addresses": None, "emails": None})
    return body


def disable_user(body: dict) -> dict:
    """
    Park the account in the former employees OU with an unknown password.
    Mail delivery keeps working as the account isn't suspended.
    """
    body.update({"changePasswordAtNextLogin": False, "includeInGlobalAddressList": False,
                 "orgUnitPath": FORMER_EMPLOYEES_OU, "password": random_password(12)})
    return body


@dataclass
class Member(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/admin-sdk/directory/reference/rest/v1/members#Member
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    id: str|None = field(default=None)
    email: str|None = field(default=None, metadata={"name": "Email"})
    role: str|None = field(default=None, metadata={"name": "Role"})
    type: str|None = field(default=None, metadata={"name": "Type"})
    status: str|None = field(default=None, metadata={"name": "Status"})
    delivery_settings: str|None = field(default=None)

    def __str__(self) -> str:
        return f"{self.email}({self.role})"

    @staticmethod
    def list(group_key: str, **kwargs) -> List[Self]:
        log_api_call("list", "members", groupKey=group_key)
        method = _get_service().members().list
        return [Member.from_response(m) for m in paginate(method, 'members', groupKey=group_key, **kwargs)]

    @staticmethod
    def insert(group_key: str, email: str, role: str = "MEMBER") -> Self:
        log_api_call("insert", "members", groupKey=group_key, email=email)
        response = _get_service().members().insert(groupKey=group_key,
                                                   body={"email": email, "role": role}).execute()
        return Member.from_response(response)

    @staticmethod
    def delete(group_key: str, member_key: str) -> None:
        log_api_call("delete", "members", groupKey=group_key, memberKey=member_key)
        _get_service().members().delete(groupKey=group_key, memberKey=member_key).execute()


@dataclass
class Group(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/admin-sdk/directory/reference/rest/v1/groups#Group
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    id: str|None = field(default=None)
    email: str|None = field(default=None, metadata={"name": "Email"})
    name: str|None = field(default=None, metadata={"name": "Name"})
    description: str|None = field(default=None, metadata={"name": "Description"})
    directMembersCount: str|None = field(default=None, metadata={"name": "Members"})
    adminCreated: bool|None = field(default=None)
    aliases: List[str]|None = field(default=None)
    nonEditableAliases: List[str]|None = field(default=None)

    def __str__(self) -> str:
        return f"{self.name}<{self.email}>"

    @staticmethod
    def list(customer: str|None = CUSTOMER, user_key: str|None = None, **kwargs) -> List[Self]:
        """
        Every group in the account, or with user_key only the groups
        that user is a member of.
        """
        args = dict(kwargs)
        if user_key:
            args['userKey'] = user_key
        elif customer:
            args['customer'] = customer
        log_api_call("list", "groups", **args)
        method = _get_service().groups().list
        return [Group.from_response(g) for g in paginate(method, 'groups', **args)]

    @staticmethod
    def get(group_key: str) -> Self:
        log_api_call("get", "groups", groupKey=group_key)
        return Group.from_response(_get_service().groups().get(groupKey=group_key).execute())


@dataclass
class OrgUnit(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/admin-sdk/directory/reference/rest/v1/orgunits#OrgUnit
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    name: str|None = field(default=None, metadata={"name": "Name"})
    description: str|None = field(default=None, metadata={"name": "Description"})
    orgUnitPath: str|None = field(default=None, metadata={"name": "Path"})
    orgUnitId: str|None = field(default=None, metadata={"name": "ID"})
    parentOrgUnitPath: str|None = field(default=None, metadata={"name": "Parent"})
    parentOrgUnitId: str|None = field(default=None)
    blockInheritance: bool|None = field(default=None)

    def __str__(self) -> str:
        return str(self.orgUnitPath)

    @property
    def depth(self) -> int:
        """'/' is 0, '/Sales' is 1, '/Sales/EMEA' is 2."""
        path = (self.orgUnitPath or "/").strip("/")
        return len(path.split("/")) if path else 0

    @staticmethod
    def _path_key(path: str) -> str:
        # the API wants paths without the leading slash
        return path.lstrip("/") if path and path != "/" else path

    @staticmethod
    def list(path: str = "/", type: str = "all") -> List[Self]:
        """
        https://developers.google.com/admin-sdk/directory/reference/rest/v1/orgunits/list
        type is 'all' for the whole subtree or 'children' for the direct children
        """
        if type not in ["all", "children", "allIncludingParent"]:
            raise ValueError(f"Invalid OrgUnit::list() type: {type}")
        args = {"customerId": CUSTOMER, "type": type}
        if path and path != "/":
            args["orgUnitPath"] = path
        log_api_call("list", "orgunits", **args)
        response = _get_service().orgunits().list(**args).execute()
        return [OrgUnit.from_response(o) for o in (response or {}).get('organizationUnits', [])]

    @staticmethod
    def get(path: str) -> Self:
        log_api_call("get", "orgunits", orgUnitPath=path)
        response = _get_service().orgunits().get(customerId=CUSTOMER, orgUnitPath=OrgUnit._path_key(path)).execute()
        return OrgUnit.from_response(response)

    @staticmethod
    def insert(ou: Self|dict) -> Self:
        body = ou.trim() if isinstance(ou, OrgUnit) else dict(ou)
        log_api_call("insert", "orgunits", name=body.get('name'), parent=body.get('parentOrgUnitPath'))
        response = _get_service().orgunits().insert(customerId=CUSTOMER, body=body).execute()
        return OrgUnit.from_response(response)

    @staticmethod
    def patch(path: str, body: dict) -> Self:
        log_api_call("patch", "orgunits", orgUnitPath=path, fields=",".join(body.keys()))
        response = _get_service().orgunits().patch(customerId=CUSTOMER, orgUnitPath=OrgUnit._path_key(path),
                                                   body=body).execute()
        return OrgUnit.from_response(response)

    @staticmethod
    def delete(path: str) -> None:
        log_api_call("delete", "orgunits", orgUnitPath=path)
        _get_service().orgunits().delete(customerId=CUSTOMER, orgUnitPath=OrgUnit._path_key(path)).execute()


def split_ou_path(path: str) -> tuple[str, str]:
    """'/Sales/EMEA' -> ('/Sales', 'EMEA'), '/Sales' -> ('/', 'Sales')"""
    trimmed = path.rstrip("/")
    parent, _, name = trimmed.rpartition("/")
    return (parent or "/", name)


@dataclass
class Alias(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/admin-sdk/directory/reference/rest/v1/users.aliases
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    id: str|None = field(default=None)
    primaryEmail: str|None = field(default=None)
    alias: str|None = field(default=None, metadata={"name": "Alias"})

    def __str__(self) -> str:
        return str(self.alias)

    @staticmethod
    def list(user_key: str) -> List[Self]:
        log_api_call("list", "aliases", userKey=user_key)
        response = _get_service().users().aliases().list(userKey=user_key).execute()
        return [Alias.from_response(a) for a in (response or {}).get('aliases', [])]

    @staticmethod
    def insert(user_key: str, alias: str) -> Self:
        log_api_call("insert", "aliases", userKey=user_key, alias=alias)
        response = _get_service().users().aliases().insert(userKey=user_key, body={"alias": alias}).execute()
        return Alias.from_response(response)

    @staticmethod
    def delete(user_key: str, alias: str) -> None:
        log_api_call("delete", "aliases", userKey=user_key, alias=alias)
        _get_service().users().aliases().delete(userKey=user_key, alias=alias).execute()


RESOURCE_TYPES = {"room": "ROOM", "equipment": "EQUIPMENT", "other": "OTHER"}


@dataclass
class CalendarResource(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/admin-sdk/directory/reference/rest/v1/resources.calendars
    Rooms and equipment that can be booked from a calendar.
    """
    kind: str|None = field(default=None)
    etags: str|None = field(default=None)
    resourceId: str|None = field(default=None, metadata={"name": "ID"})
    resourceName: str|None = field(default=None, metadata={"name": "Name"})
    generatedResourceName: str|None = field(default=None)
    resourceType: str|None = field(default=None, metadata={"name": "Type"})
    resourceDescription: str|None = field(default=None, metadata={"name": "Description"})
    resourceEmail: str|None = field(default=None, metadata={"name": "Email"})
    capacity: int|None = field(default=None, metadata={"name": "Capacity"})
    buildingId: str|None = field(default=None, metadata={"name": "Building"})
    floorName: str|None = field(default=None, metadata={"name": "Floor"})
    floorSection: str|None = field(default=None)
    resourceCategory: str|None = field(default=None)
    userVisibleDescription: str|None = field(default=None)
    featureInstances: List[dict]|None = field(default=None)

    def __str__(self) -> str:
        return f"{self.resourceName}<{self.resourceId}>"

    @staticmethod
    def list(**kwargs) -> List[Self]:
        log_api_call("list", "resources.calendars", **kwargs)
        method = _get_service().resources().calendars().list
        return [CalendarResource.from_response(r) for r in paginate(method, 'items', customer=CUSTOMER, **kwargs)]

    @staticmethod
    def get(resource_id: str) -> Self:
        log_api_call("get", "resources.calendars", calendarResourceId=resource_id)
        response = _get_service().resources().calendars().get(customer=CUSTOMER,
                                                              calendarResourceId=resource_id).execute()
        return CalendarResource.from_response(response)

    @staticmethod
    def insert(resource: Self|dict) -> Self:
        body = resource.trim() if isinstance(resource, CalendarResource) else dict(resource)
        log_api_call("insert", "resources.calendars", resourceId=body.get('resourceId'))
        response = _get_service().resources().calendars().insert(customer=CUSTOMER, body=body).execute()
        return CalendarResource.from_response(response)

    @staticmethod
    def update(resource: Self) -> Self:
        body = resource.trim()
        log_api_call("update", "resources.calendars", calendarResourceId=resource.resourceId)
        response = _get_service().resources().calendars().update(customer=CUSTOMER,
                                                                 calendarResourceId=resource.resourceId,
                                                                 body=body).execute()
        resource.update_fields(**response)
        return resource

    @staticmethod
    def delete(resource_id: str) -> None:
        log_api_call("delete", "resources.calendars", calendarResourceId=resource_id)
        _get_service().resources().calendars().delete(customer=CUSTOMER, calendarResourceId=resource_id).execute()


@dataclass
class Building(GoogleWorkSpaceResourceBase):
    kind: str|None = field(default=None)
    etags: str|None = field(default=None)
    buildingId: str|None = field(default=None)
    buildingName: str|None = field(default=None)
    description: str|None = field(default=None)
    floorNames: List[str]|None = field(default=None)
    coordinates: dict|None = field(default=None)
    address: dict|None = field(default=None)

    @staticmethod
    def list() -> List[Self]:
        log_api_call("list", "resources.buildings")
        method = _get_service().resources().buildings().list
        return [Building.from_response(b) for b in paginate(method, 'buildings', customer=CUSTOMER)]
