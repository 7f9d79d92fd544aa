"""
Small request-shaping helpers shared by the route modules.
"""

import json
import math
import random
import re
import string
import uuid
from datetime import datetime
from typing import Any, List, Optional, Union

EMAIL_PATTERN = re.compile(r"^([0-9a-zA-Z_.-]+)@([0-9a-zA-Z_-]+)(\.[0-9a-zA-Z_-]+){1,3}$")
AUTH_CODE_CHARACTERS = string.ascii_letters + string.digits


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def is_valid_birthday(birthday: Optional[str]) -> bool:
    """Strict YYYYMMDD calendar date."""
    if not birthday or len(birthday) != 8 or not birthday.isdigit():
        return False
    try:
        datetime.strptime(birthday, "%Y%m%d")
    except ValueError:
        return False
    return True


def generate_auth_code(length: int = 8) -> str:
    return "".join(random.choice(AUTH_CODE_CHARACTERS) for _ in range(length))


def generate_unique_id() -> str:
    return uuid.uuid4().hex


def is_blank(value: Any) -> bool:
    return value is None or value == ""


def parse_json_field(value: Optional[str], default: Any = None) -> Any:
    """Decode a JSON column/form value; None and "" give the default."""
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        return value
    return json.loads(value)


def is_json_object(value: Optional[str]) -> bool:
    try:
        return isinstance(json.loads(value), dict)
    except (TypeError, ValueError):
        return False


def split_address(address_information: Optional[str]) -> List[str]:
    """
    Address JSON is {"address": "<province> <city> ...", ...}.
    Returns the space-separated parts, or a placeholder pair when absent.
    """
    try:
        address = json.loads(address_information or "{}").get("address")
    except (TypeError, ValueError, AttributeError):
        address = None
    if not address:
        return ["No", "address"]
    parts = address.split(" ")
    return parts if len(parts) >= 2 else parts + [""]


def region_of(address_information: Optional[str]) -> str:
    province, city = split_address(address_information)[:2]
    return f"{province} {city}"


def _round(value: float) -> int:
    """Half-up rounding (JavaScript's Math.round for non-negative values)."""
    return int(math.floor(value + 0.5))


def from_now(moment: Union[datetime, str, None], now: Optional[datetime] = None) -> str:
    """
    Human relative time ("3 hours ago"), using the same thresholds as
    dayjs' relativeTime plugin so the board reads the same as before.

    Each unit is rounded first and then compared with the threshold.
    """
    if moment is None:
        return ""
    if isinstance(moment, str):
        moment = datetime.fromisoformat(moment)
    now = now or datetime.now()
    seconds = (now - moment).total_seconds()
    is_past = seconds >= 0
    seconds = abs(seconds)

    minutes = _round(seconds / 60)
    hours = _round(seconds / 3600)
    days = _round(seconds / 86400)
    months = _round(seconds / 86400 / 30.4)
    years = _round(seconds / 86400 / 365)

    if _round(seconds) <= 44:
        text = "a few seconds"
    elif _round(seconds) <= 89:
        text = "a minute"
    elif minutes <= 44:
        text = f"{minutes} minutes"
    elif minutes <= 89:
        text = "an hour"
    elif hours <= 21:
        text = f"{hours} hours"
    elif hours <= 35:
        text = "a day"
    elif days <= 25:
        text = f"{days} days"
    elif days <= 45:
        text = "a month"
    elif months <= 10:
        text = f"{months} months"
    elif months <= 17:
        text = "a year"
    else:
        text = f"{years} years"

    return f"{text} ago" if is_past else f"in {text}"
