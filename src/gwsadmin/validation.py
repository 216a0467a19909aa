"""
Input validation shared by the commands.  Everything raises ValidationError.
"""
import re
import uuid

from .errors import ValidationError

MAX_EMAIL_LENGTH = 254
MAX_LOCAL_PART_LENGTH = 64
MAX_GROUP_NAME_LENGTH = 60
MAX_DEPARTMENT_LENGTH = 100
MIN_PHONE_DIGITS = 7

_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$")
_PHONE_RE = re.compile(r"^[\d\s\-\(\)\+\.ext,]+$")
_GROUP_NAME_RE = re.compile(r"^[a-zA-Z0-9._-]+$")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def validate_email(email: str) -> str:
    """Return the trimmed address or raise ValidationError."""
    e = str(email or "").strip()
    if not e:
        raise ValidationError("email cannot be empty")
    if len(e) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"email too long (max {MAX_EMAIL_LENGTH} characters)")
    if not _EMAIL_RE.match(e):
        raise ValidationError(f"invalid email format: {e}")
    local = e.split("@", 1)[0]
    if len(local) > MAX_LOCAL_PART_LENGTH:
        raise ValidationError(f"email local part too long (max {MAX_LOCAL_PART_LENGTH} characters)")
    return e


def validate_phone(phone: str) -> str:
    """
    Accepts an optional 'type:' prefix (work:555-1234567).  Only the number
    part is checked.
    """
    p = str(phone or "").strip()
    if not p:
        raise ValidationError("phone number cannot be empty")
    if ":" in p:
        p = p.split(":", 1)[1].strip()
    if not _PHONE_RE.match(p):
        raise ValidationError(f"invalid phone number format: {p}")
    digits = sum(1 for c in p if c.isdigit())
    if digits < MIN_PHONE_DIGITS:
        raise ValidationError(f"phone number too short (min {MIN_PHONE_DIGITS} digits)")
    return p


def validate_uuid(value: str) -> str:
    v = str(value or "").strip()
    if not v:
        raise ValidationError("UUID cannot be empty")
    try:
        uuid.UUID(v)
    except ValueError as e:
        raise ValidationError(f"invalid UUID format: {v}") from e
    return v


def validate_group_name(name: str) -> str:
    """A full group address is validated as an email, a bare name by charset."""
    n = str(name or "").strip()
    if not n:
        raise ValidationError("group name cannot be empty")
    if "@" in n:
        return validate_email(n)
    if len(n) > MAX_GROUP_NAME_LENGTH:
        raise ValidationError(f"group name too long (max {MAX_GROUP_NAME_LENGTH} characters)")
    if not _GROUP_NAME_RE.match(n):
        raise ValidationError(f"invalid group name: {n} (allowed: letters, digits, '.', '_', '-')")
    return n


def validate_department(dept: str) -> str:
    d = str(dept or "").strip()
    if not d:
        raise ValidationError("department cannot be empty")
    if len(d) > MAX_DEPARTMENT_LENGTH:
        raise ValidationError(f"department name too long (max {MAX_DEPARTMENT_LENGTH} characters)")
    return d


def sanitize_input(value: str) -> str:
    """Trim and strip NUL and control characters, keeping tab, newline and CR."""
    return _CONTROL_RE.sub("", str(value or "").strip())
