"""Input checks shared by the services.

Services are also called directly (jobs, event hooks), so they re-check
what the request models already validate for HTTP callers.
"""

from enum import Enum
from typing import Any, TypeVar

from email_validator import EmailNotValidError, validate_email

from api.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: type[E], value: Any, field: str) -> E:
    """Return ``value`` as a member of ``enum_cls`` or raise ValidationError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"Invalid {field} {value!r}; expected one of: {allowed}",
            field=field,
        ) from None


def normalize_email(email: Any) -> str:
    """Validate an address with email-validator and return it lowercased.

    Deliverability (DNS) is not checked, matching pydantic's ``EmailStr``.
    """
    if not isinstance(email, str):
        raise ValidationError("A valid email address is required", field="email")
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError(
            f"A valid email address is required: {exc}", field="email"
        ) from None
    return result.normalized.lower()
