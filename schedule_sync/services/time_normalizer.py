# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Time normalization — pure computation, no side effects.

The remote service echoes timestamps back in a different UTC offset than
submitted, so every comparison goes through the canonical UTC form.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from schedule_sync.core.errors import InvalidTimestamp

# RFC 3339 date-time: mandatory offset, optional fractional seconds.
RFC3339_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


def to_utc(timestamp: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    if not isinstance(timestamp, str) or not RFC3339_PATTERN.match(timestamp):
        raise InvalidTimestamp(timestamp)
    value = timestamp.upper().replace("Z", "+00:00").replace(" ", "T")
    # fromisoformat only accepts 3 or 6 fractional digits before 3.11
    match = re.search(r"\.(\d+)", value)
    if match:
        digits = (match.group(1) + "000000")[:6]
        value = value[: match.start()] + "." + digits + value[match.end():]
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidTimestamp(timestamp) from exc
    return parsed.astimezone(timezone.utc)


def format_utc(moment: datetime) -> str:
    """Serialize an aware datetime in canonical form: 2017-09-01T08:00:00Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    pattern = "%Y-%m-%dT%H:%M:%S.%fZ" if moment.microsecond else "%Y-%m-%dT%H:%M:%SZ"
    return moment.strftime(pattern)


def normalize(timestamp: str) -> str:
    """Canonical UTC string for an RFC 3339 timestamp. Raises InvalidTimestamp."""
    return format_utc(to_utc(timestamp))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def same_instant(left: Optional[str], right: Optional[str]) -> bool:
    """Compare two optional timestamps by instant; empty only equals empty."""
    if not left or not right:
        return not left and not right
    return to_utc(left) == to_utc(right)
