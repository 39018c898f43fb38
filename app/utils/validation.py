import re
from datetime import time
from typing import Optional

from app.core.exceptions import ValidationError

TIME_PATTERN = re.compile(r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$")


def validate_time_format(value: str) -> bool:
    """Validate a 24h wall-clock time in HH:MM format."""
    if not value:
        return False
    return bool(TIME_PATTERN.match(value))


def parse_time_string(value: Optional[str], field_name: str = "time") -> time:
    """Parse HH:MM into a ``time``, raising a user-facing ValidationError."""
    if not value:
        raise ValidationError(f"{field_name} is required")
    if not validate_time_format(value):
        raise ValidationError(f"Invalid {field_name} format")
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def time_to_minutes(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def validate_phone_number(phone: str) -> bool:
    """Validate phone number format (international or local)."""
    if not phone:
        return True  # Allow empty/null

    # Basic phone validation - accepts various formats
    phone_pattern = r'^[\+]?[1-9][\d\-\s\(\)\.]{7,15}$'
    return bool(re.match(phone_pattern, phone.replace(' ', '')))


def validate_email_format(email: str) -> bool:
    """Validate email format."""
    if not email:
        return True  # Allow empty/null

    email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(email_pattern, email))
