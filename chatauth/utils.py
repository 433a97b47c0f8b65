import re
import hashlib
import secrets
from datetime import datetime, timedelta, timezone

PHONE_PATTERN = re.compile(r"^1[3-9]\d{9}$")

_DURATION_PATTERN = re.compile(
    r"^(?P<value>-?\d*\.?\d+)\s*"
    r"(?P<unit>milliseconds?|msecs?|ms|seconds?|secs?|s|minutes?|mins?|m"
    r"|hours?|hrs?|h|days?|d|weeks?|w|years?|yrs?|y)?$",
    re.IGNORECASE,
)

_UNIT_MS = {
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "w": 7 * 24 * 60 * 60 * 1000,
    "y": 365.25 * 24 * 60 * 60 * 1000,
}


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every table column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _unit_key(unit: str) -> str:
    unit = unit.lower()
    if unit.startswith("ms") or unit.startswith("milli"):
        return "ms"
    if unit.startswith("min") or unit == "m":
        return "m"
    return unit[0]


def parse_duration(value: str) -> timedelta:
    """Parse an expiry string such as "15m", "30d", "15Minutes" or "2 hours".

    A bare number is read as milliseconds. Zero and negative durations are rejected.
    """
    if value is None:
        raise ValueError("Duration is required")
    match = _DURATION_PATTERN.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount = float(match.group("value"))
    unit = match.group("unit")
    millis = amount * _UNIT_MS[_unit_key(unit)] if unit else amount
    if millis <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return timedelta(milliseconds=millis)


def is_valid_phone(phone: str) -> bool:
    return bool(phone) and PHONE_PATTERN.match(phone) is not None


def generate_secure_otp() -> str:
    """Generate a cryptographically secure 6-digit code (leading zeros kept)."""
    return str(secrets.randbelow(1000000)).zfill(6)


def hash_phone_number(phone: str) -> str:
    """Hash phone number for logs (one-way hash)"""
    return hashlib.sha256(phone.encode()).hexdigest()


def normalize_phone_number(phone: str, default_country_code: str = "+86") -> str:
    """E.164 form for dispatch: domestic numbers get the default country code."""
    phone = phone.strip()
    if phone.startswith("+"):
        return phone
    return f"{default_country_code}{phone}"
