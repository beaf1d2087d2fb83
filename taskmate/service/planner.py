"""
Dashboard feeds built from calendar events, manual tasks and Canvas assignments.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional
from taskmate.model.task import Task
from taskmate.utils.helpers import parse_datetime

CATEGORY_COLORS = {
    "school": "#8B5CF6",
    "work": "#06B6D4",
    "personal": "#F97316",
}
DEFAULT_CATEGORY = "personal"

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
CLOSED_STATUSES = ("done", "completed")

# sorts after every real date
_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def category_color(category: Optional[str]) -> str:
    return CATEGORY_COLORS.get(category or "", CATEGORY_COLORS[DEFAULT_CATEGORY])


def _sort_moment(value) -> datetime:
    parsed = parse_datetime(value)
    return parsed if parsed is not None else _FAR_FUTURE


def event_entry(event: dict) -> dict:
    category = event.get("category") or DEFAULT_CATEGORY
    return {
        "id": event.get("id"),
        "title": event.get("title"),
        "start": event.get("start"),
        "end": event.get("end"),
        "allDay": bool(event.get("allDay")),
        "category": category,
        "color": category_color(category),
        "source": "google",
    }


def task_entry(task: Task) -> dict:
    moment = task.due_date.isoformat()
    category = task.category or DEFAULT_CATEGORY
    return {
        "id": f"task-{task.task_id}",
        "title": task.title,
        "start": moment,
        "end": moment,
        "allDay": not task.due_time,
        "category": category,
        "color": category_color(category),
        "source": "task",
    }


def assignment_entry(assignment: dict) -> dict:
    title = assignment.get("name")
    if assignment.get("courseName"):
        title = f"{title} ({assignment['courseName']})"
    return {
        "id": f"canvas-{assignment.get('id')}",
        "title": title,
        "start": assignment.get("dueDate"),
        "end": assignment.get("dueDate"),
        "allDay": False,
        "category": "school",
        "color": category_color("school"),
        "source": "canvas",
    }


def merge_calendar(events: Iterable[dict], tasks: Iterable[Task], assignments: Iterable[dict]) -> list[dict]:
    """
    One colour-coded list of calendar entries sorted by start.

    Tasks without a due date are left out.
    """
    entries = [event_entry(event) for event in events]
    entries.extend(task_entry(task) for task in tasks if task.due_date is not None and not task.has_no_due_date)
    entries.extend(assignment_entry(assignment) for assignment in assignments)
    entries.sort(key=lambda entry: _sort_moment(entry["start"]))
    return entries


def task_todo(task: Task) -> dict:
    return {
        "id": f"task-{task.task_id}",
        "name": task.title,
        "courseName": None,
        "dueDate": task.due_date.isoformat() if task.due_date else None,
        "priority": task.priority or "medium",
        "status": task.status or "pending",
        "url": None,
        "source": "task",
    }


def assignment_todo(assignment: dict) -> dict:
    return {
        "id": assignment.get("id"),
        "name": assignment.get("name"),
        "courseName": assignment.get("courseName"),
        "dueDate": assignment.get("dueDate"),
        "priority": assignment.get("priority") or "medium",
        "status": assignment.get("status") or "not_started",
        "url": assignment.get("url"),
        "source": "canvas",
    }


def build_todo(tasks: Iterable[Task], assignments: Iterable[dict]) -> list[dict]:
    """
    Open tasks and assignments, highest priority first, then soonest due.
    """
    items = [task_todo(task) for task in tasks]
    items.extend(assignment_todo(assignment) for assignment in assignments)
    items = [item for item in items if item["status"] not in CLOSED_STATUSES]
    items.sort(key=lambda item: (
        PRIORITY_ORDER.get(item["priority"], PRIORITY_ORDER["medium"]),
        _sort_moment(item["dueDate"]),
    ))
    return items
