# This project was developed with assistance from AI tools.
"""Field-level parsing and validation shared by the workflow services.

Pure functions. Each raises ``ValidationError`` carrying the offending
field name; malformed numbers are never coerced to zero.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from db.enums import PropertyType

from ..core.errors import ValidationError

_LOCAL_PHONE_RE = re.compile(r"\d{8}")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def require_fields(values: Mapping[str, Any], fields: Iterable[str], *, label: str = "") -> None:
    """Raise one ValidationError listing every missing or blank field."""
    prefix = f"{label} " if label else ""
    errors = [
        {"field": name, "message": f"Missing required {prefix}field: {name}"}
        for name in fields
        if is_blank(values.get(name))
    ]
    if errors:
        raise ValidationError(errors[0]["message"], errors=errors)


def require_text(field: str, value: Any) -> str:
    if is_blank(value):
        raise ValidationError(f"Missing required field: {field}", field=field)
    return str(value).strip()


def optional_text(value: Any) -> str | None:
    if is_blank(value):
        return None
    return str(value).strip()


def parse_decimal(
    field: str,
    value: Any,
    *,
    allow_zero: bool = False,
    max_digits: int | None = None,
    places: int | None = None,
) -> Decimal:
    """Parse a positive decimal from str/int/float/Decimal input.

    ``max_digits`` and ``places`` mirror the target ``Numeric(p, s)`` column so
    a value that would overflow or be silently rounded on write is rejected.
    """
    if isinstance(value, bool) or is_blank(value):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        if isinstance(value, str):
            amount = Decimal(value.strip().replace(",", "").replace(" ", ""))
        else:
            amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} must be a number", field=field) from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number", field=field)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than zero", field=field)
    if max_digits is not None and amount >= Decimal(10) ** (max_digits - (places or 0)):
        raise ValidationError(f"{field} is too large", field=field)
    if places is not None and amount.normalize().as_tuple().exponent < -places:
        raise ValidationError(f"{field} must have at most {places} decimal places", field=field)
    return amount


def parse_optional_decimal(
    field: str,
    value: Any,
    *,
    allow_zero: bool = False,
    max_digits: int | None = None,
    places: int | None = None,
) -> Decimal | None:
    if is_blank(value):
        return None
    return parse_decimal(field, value, allow_zero=allow_zero, max_digits=max_digits, places=places)


def parse_int(field: str, value: Any, *, minimum: int = 0) -> int:
    """Parse a whole number no smaller than ``minimum``."""
    if isinstance(value, bool) or is_blank(value):
        raise ValidationError(f"{field} must be a whole number", field=field)
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        if not re.fullmatch(r"[+-]?\d+", text):
            raise ValidationError(f"{field} must be a whole number", field=field)
        number = int(text)
    if number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}", field=field)
    return number


def parse_optional_int(field: str, value: Any, *, minimum: int = 0) -> int | None:
    if is_blank(value):
        return None
    return parse_int(field, value, minimum=minimum)


def normalize_property_type(value: Any) -> PropertyType:
    """Normalize free-form type labels ("Town House", "town-house") to the enum."""
    if is_blank(value):
        raise ValidationError("Missing required field: property_type", field="property_type")
    key = re.sub(r"[\s\-]+", "_", str(value).strip().lower())
    aliases = {"town_house": "townhouse", "flat": "apartment", "pent_house": "penthouse"}
    key = aliases.get(key, key)
    try:
        return PropertyType(key)
    except ValueError as exc:
        allowed = ", ".join(t.value for t in PropertyType)
        raise ValidationError(
            f"Unknown property_type '{value}'. Allowed: {allowed}", field="property_type"
        ) from exc


def parse_date_of_birth(value: Any, *, field: str = "date_of_birth") -> date:
    """Parse a DD/MM/YYYY display date (or ISO YYYY-MM-DD) into a date."""
    if is_blank(value):
        raise ValidationError(f"Missing required field: {field}", field=field)
    text = str(value).strip()
    for fmt in ("%d/%m/%Y", "%Y-%m-%d"):
        try:
            parsed = datetime.strptime(text, fmt).date()
            break
        except ValueError:
            continue
    else:
        raise ValidationError(
            f"{field} must be in DD/MM/YYYY format", field=field
        )
    if parsed >= date.today():
        raise ValidationError(f"{field} must be in the past", field=field)
    return parsed


def validate_local_phone(field: str, value: Any) -> str:
    """Local phone numbers are exactly 8 digits."""
    text = "" if value is None else str(value).strip()
    if not _LOCAL_PHONE_RE.fullmatch(text):
        raise ValidationError(f"{field} must be 8 digits", field=field)
    return text


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off", ""}


def parse_bool(field: str, value: Any, *, default: bool = False) -> bool:
    """Accept real booleans and the string forms multipart forms send."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValidationError(f"{field} must be true or false", field=field)


def parse_string_list(field: str, value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f"{field} must be a list of strings", field=field)
    return [item for item in value if item.strip()]
