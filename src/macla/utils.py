from datetime import datetime, timezone
from zoneinfo import ZoneInfo
import math
import time

from macla.errors import InvalidReminderTime

__all__ = ["now_ms", "now_utc", "parse_iso_to_ms", "parse_when_to_ms", "ms_to_local_str", "ms_to_utc_iso"]

def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def parse_iso_to_ms(value: str, default_tz: str = "UTC") -> int:
    """Parse an ISO-8601 string to epoch milliseconds.

    A trailing 'Z' means UTC. Strings without an offset are read in `default_tz`.
    """
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(default_tz))
    return int(round(dt.timestamp() * 1000))

def parse_when_to_ms(when: object, default_tz: str = "UTC") -> int:
    """Accept epoch milliseconds (int/float/numeric string) or an ISO-8601 string"""
    if isinstance(when, bool) or when is None:
        raise InvalidReminderTime(when)
    if isinstance(when, (int, float)):
        if not math.isfinite(when):
            raise InvalidReminderTime(when)
        return int(when)
    if isinstance(when, str):
        raw = when.strip()
        if raw == "":
            raise InvalidReminderTime(when)
        try:
            number = float(raw)
        except ValueError:
            number = None
        if number is not None:
            if not math.isfinite(number):
                raise InvalidReminderTime(when)
            return int(number)
        try:
            return parse_iso_to_ms(raw, default_tz)
        except (ValueError, KeyError) as e:
            raise InvalidReminderTime(when) from e
    raise InvalidReminderTime(when)

def ms_to_local_str(ms: int, user_tz: str) -> str:
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc).astimezone(ZoneInfo(user_tz))
    return dt.strftime("%Y-%m-%d %H:%M")

def ms_to_utc_iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
