import re
from datetime import datetime, date, time, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from zoneinfo import ZoneInfo
from taskmate.config import DEFAULT_TIMEZONE

EXTERNAL_USER_PREFIX = "user_"


def external_user_id(user_id: int) -> str:
    """
    Composio external user id for an application user: user_<user_id>
    """
    return f"{EXTERNAL_USER_PREFIX}{user_id}"


def user_id_from_external(external_id: Optional[str]) -> Optional[int]:
    """
    Inverse of external_user_id; None for ids that do not follow the user_<n> format.
    """
    if not external_id or not external_id.startswith(EXTERNAL_USER_PREFIX):
        return None
    match = re.match(r"^\d+", external_id[len(EXTERNAL_USER_PREFIX):])
    return int(match.group()) if match else None


def get_timezone(name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(name or DEFAULT_TIMEZONE)


def local_now(tz: Optional[ZoneInfo] = None) -> datetime:
    return datetime.now(tz or get_timezone())


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def week_bounds(now: datetime) -> tuple[datetime, datetime]:
    """
    Monday 00:00 of the week containing ``now`` and the end of the day
    seven days later.

    Args:
        now: timezone-aware current time

    Returns:
        (week_start, week_end)
    """
    week_start = start_of_day(now - timedelta(days=now.weekday()))
    week_end = (week_start + timedelta(days=7)).replace(hour=23, minute=59, second=59, microsecond=999999)
    return week_start, week_end


def parse_datetime(value, tz: Optional[ZoneInfo] = None) -> Optional[datetime]:
    """
    Parse an ISO 8601 date or date-time (``Z`` suffix allowed) into an aware
    datetime. Naive values are taken as local time in ``tz``; None on failure.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz or get_timezone())
    return parsed


def parse_email_date(value, default: datetime) -> datetime:
    """
    Parse an RFC 2822 ``Date`` header, falling back to ISO 8601 and then to ``default``.

    Integers and digit strings are taken as Gmail's ``internalDate``
    (milliseconds since the epoch); any other non-string value gives ``default``.
    """
    if not value:
        return default
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return default
    if not isinstance(value, str):
        return default
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = parse_datetime(value)
    if parsed is None:
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default.tzinfo)
    return parsed


def combine_due(due_date: str, due_time: Optional[str] = None) -> datetime:
    """
    Combine the date and optional time entered for a task.

    ``2025-11-10`` + ``14:30`` -> 2025-11-10 14:30:00; without a time the task
    is due at 23:59:59 that day.

    Raises:
        ValueError: malformed date or time
    """
    day = date.fromisoformat(str(due_date).strip()[:10])
    if not due_time:
        return datetime.combine(day, time(23, 59, 59))
    return datetime.combine(day, time.fromisoformat(str(due_time).strip()))


def relative_timestamp(sent: datetime, now: datetime) -> str:
    """
    Short age label: "Just now", "5h ago", "1d ago", "3d ago", or M/D/YYYY after a week.
    """
    diff_hours = int((now - sent).total_seconds() // 3600)
    diff_days = diff_hours // 24

    if diff_hours < 1:
        return "Just now"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    if diff_days == 1:
        return "1d ago"
    if diff_days < 7:
        return f"{diff_days}d ago"
    local = sent.astimezone(now.tzinfo) if now.tzinfo else sent
    return f"{local.month}/{local.day}/{local.year}"
