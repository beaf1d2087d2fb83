import re
from datetime import datetime
from typing import Optional
from taskmate.config import DEFAULT_TIMEZONE
from taskmate.service.composio_service import ComposioService, ComposioError, dig, extract_list, field
from taskmate.utils.helpers import week_bounds, local_now
from taskmate.utils.logger import get_logger

logger = get_logger("calendar_service")

LIST_EVENT_TOOLS = (
    "GOOGLECALENDAR_FIND_EVENT",
    "GOOGLECALENDAR_LIST_EVENTS",
    "GOOGLECALENDAR_EVENTS_LIST",
    "GOOGLECALENDAR_LISTCALENDAREVENTS",
)
EVENT_KEYWORDS = (("find", "event"), ("list", "event"))

CREATE_EVENT_TOOL = "GOOGLECALENDAR_CREATE_EVENT"
DELETE_EVENT_TOOL = "GOOGLECALENDAR_DELETE_EVENT"

SCHOOL_PATTERN = re.compile(
    r"\b(class|lecture|exam|quiz|homework|assignment|study|school|university|college|cs\s|math|physics"
    r"|chemistry|biology|lab|seminar|tutorial|project|presentation|essay)\b"
)
WORK_PATTERN = re.compile(
    r"\b(work|meeting|shift|standup|scrum|sprint|client|deadline|conference|interview|office|team"
    r"|project meeting|1:1|one-on-one|sync)\b"
)


def categorize_event(title: Optional[str]) -> str:
    """
    school / work / personal from keywords in an event title; school wins ties.
    """
    lowered = (title or "").lower()
    if SCHOOL_PATTERN.search(lowered):
        return "school"
    if WORK_PATTERN.search(lowered):
        return "work"
    return "personal"


def normalize_event(item: dict) -> dict:
    start_date_time = dig(item, "start.dateTime")
    title = field(item, "summary", default="No Title")
    return {
        "id": field(item, "id"),
        "title": title,
        "start": start_date_time or dig(item, "start.date"),
        "end": dig(item, "end.dateTime") or dig(item, "end.date"),
        "allDay": not start_date_time,
        "category": categorize_event(title),
    }


class CalendarService:
    """Google Calendar reads and writes through Composio."""

    def __init__(self, composio: ComposioService, timezone: str = DEFAULT_TIMEZONE):
        self.composio = composio
        self.timezone = timezone

    def week_events(self, user_id: str, now: Optional[datetime] = None) -> dict:
        """
        Events of the current week for ``user_id``.

        Returns:
            {"events", "weekStart", "weekEnd"} plus "message" when the list
            tool could not be found.

        Raises:
            ComposioError: listing tools or running the list tool failed
        """
        week_start, week_end = week_bounds(now or local_now())
        payload = {
            "events": [],
            "weekStart": week_start.isoformat(),
            "weekEnd": week_end.isoformat(),
        }

        tool = self.composio.discover_tool(
            user_id,
            "GOOGLECALENDAR",
            LIST_EVENT_TOOLS,
            EVENT_KEYWORDS,
            search="list events",
        )
        if not tool:
            logger.warning(f"List events tool not found for {user_id}")
            payload["message"] = "Calendar tool not found"
            return payload

        logger.info(f"Using {tool['name']} for {user_id} from {payload['weekStart']} to {payload['weekEnd']}")
        result = self.composio.execute(
            tool["name"],
            user_id,
            {
                "calendarId": "primary",
                "timeMin": payload["weekStart"],
                "timeMax": payload["weekEnd"],
                "maxResults": 250,
                "singleEvents": True,
                "orderBy": "startTime",
            },
        )

        items = extract_list(result, "data.items", "items", "", "data", "data.response_data.items")
        payload["events"] = [normalize_event(item) for item in items if isinstance(item, dict)]
        return payload

    def create_event(self, user_id: str, title: str, description: Optional[str], due: datetime) -> Optional[str]:
        """
        Mirror a task as a zero-length event at its due time; returns the event id.
        """
        moment = {"dateTime": due.isoformat(), "timeZone": self.timezone}
        result = self.composio.execute(
            CREATE_EVENT_TOOL,
            user_id,
            {
                "calendarId": "primary",
                "summary": title,
                "description": description or "",
                "start": moment,
                "end": moment,
            },
        )
        return dig(result, "data.id") or dig(result, "data.response_data.id")

    def delete_event(self, user_id: str, event_id: str) -> None:
        result = self.composio.execute(
            DELETE_EVENT_TOOL,
            user_id,
            {"calendarId": "primary", "eventId": event_id},
        )
        error = field(result, "error")
        if error:
            raise ComposioError(f"{DELETE_EVENT_TOOL} failed: {error}")
