"""
Explicit validation of user payloads.

``validate_user`` takes a raw mapping (a request body, or a stored record
with an update merged onto it), normalises every known field and returns
the cleaned data together with a list of ``(field, message)`` pairs, one
per offending field. Unknown keys are dropped.
"""
import re
from typing import Any, Dict, List, Optional, Tuple

NAME_MAX_LENGTH = 50
AGE_MIN = 0
AGE_MAX = 120

EMAIL_PATTERN = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*(?:\.\w{2,3})+$", re.ASCII)

USER_FIELDS = ("name", "email", "age", "city")

FieldError = Tuple[str, str]


class _Invalid(Exception):
    pass


def _to_text(field: str, value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value).strip()
    raise _Invalid(f"{field.capitalize()} must be a string")


def _to_age(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        raise _Invalid("Age must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            return int(value)
        except ValueError:
            try:
                value = float(value)
            except ValueError:
                raise _Invalid("Age must be a number")
    if isinstance(value, float):
        if not value.is_integer():
            raise _Invalid("Age must be an integer")
        return int(value)
    raise _Invalid("Age must be a number")


def _check_name(value: Any) -> str:
    name = "" if value is None else _to_text("name", value)
    if not name:
        raise _Invalid("Name is required")
    # length in UTF-16 code units, so an emoji counts as two
    if len(name.encode("utf-16-le")) // 2 > NAME_MAX_LENGTH:
        raise _Invalid(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
    return name


def _check_email(value: Any) -> str:
    email = "" if value is None else _to_text("email", value).lower()
    if not email:
        raise _Invalid("Email is required")
    if not EMAIL_PATTERN.match(email):
        raise _Invalid("Please enter a valid email")
    return email


def _check_age(value: Any) -> Optional[int]:
    if value is None:
        return None
    age = _to_age(value)
    if age is None:
        return None
    if age < AGE_MIN:
        raise _Invalid("Age cannot be negative")
    if age > AGE_MAX:
        raise _Invalid(f"Age cannot exceed {AGE_MAX}")
    return age


def _check_city(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _to_text("city", value)


_CHECKS = {
    "name": _check_name,
    "email": _check_email,
    "age": _check_age,
    "city": _check_city,
}

# name and email are checked even when the key is missing
_REQUIRED = ("name", "email")


def validate_user(data: Dict[str, Any]) -> Tuple[Dict[str, Any], List[FieldError]]:
    cleaned: Dict[str, Any] = {}
    errors: List[FieldError] = []
    for field in USER_FIELDS:
        if field not in data and field not in _REQUIRED:
            continue
        try:
            cleaned[field] = _CHECKS[field](data.get(field))
        except _Invalid as e:
            errors.append((field, str(e)))
    return cleaned, errors
