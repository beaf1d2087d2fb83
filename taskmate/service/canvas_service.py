from datetime import datetime
from typing import Optional
from taskmate.config import CANVAS_BASE_URL
from taskmate.service.composio_service import ComposioService, ComposioError, extract_list, field, result_error
from taskmate.utils.helpers import local_now, start_of_day, parse_datetime
from taskmate.utils.logger import get_logger

logger = get_logger("canvas_service")

LIST_COURSES_TOOL = "CANVAS_LIST_COURSES"
LIST_ASSIGNMENTS_TOOL = "CANVAS_GET_ALL_ASSIGNMENTS"

COURSE_PATHS = ("data.response_data", "data", "", "data.data", "data.courses")
ASSIGNMENT_PATHS = ("data.response_data", "data", "data.data", "")

LIST_COURSES_ERROR = "Canvas returned an error while listing courses. Check your Canvas connection in Composio."


def assignment_url(assignment: dict, course_id, base_url: str) -> Optional[str]:
    url = field(assignment, "html_url", "url")
    if url:
        return url
    assignment_id = field(assignment, "id")
    if base_url and course_id and assignment_id:
        return f"{base_url.rstrip('/')}/courses/{course_id}/assignments/{assignment_id}"
    return None


class CanvasService:
    """Upcoming Canvas assignments through Composio."""

    def __init__(self, composio: ComposioService, base_url: str = CANVAS_BASE_URL):
        self.composio = composio
        self.base_url = base_url

    def list_courses(self, user_id: str) -> tuple[list, Optional[str]]:
        """
        Active courses and, when Canvas reported an error, a message for the client.
        """
        result = self.composio.execute(
            LIST_COURSES_TOOL,
            user_id,
            {"enrollment_state": "active", "per_page": 100},
        )
        error = result_error(result)
        if error:
            logger.error(f"[Canvas] Error from {LIST_COURSES_TOOL}: {error}")
            return [], LIST_COURSES_ERROR

        courses = [course for course in extract_list(result, *COURSE_PATHS) if isinstance(course, dict)]
        logger.info(f"[Canvas] Found {len(courses)} courses for user {user_id}")
        return courses, None

    def course_assignments(self, user_id: str, course_id) -> list:
        result = self.composio.execute(
            LIST_ASSIGNMENTS_TOOL,
            user_id,
            {
                # the tool schema has used both spellings
                "courseId": int(course_id),
                "course_id": int(course_id),
                "per_page": 100,
            },
        )
        return [item for item in extract_list(result, *ASSIGNMENT_PATHS) if isinstance(item, dict)]

    def upcoming_assignments(self, user_id: str, now: Optional[datetime] = None) -> tuple[list[dict], Optional[str]]:
        """
        Assignments due today or later across all active courses, soonest first.

        A course whose assignments cannot be fetched is skipped.

        Returns:
            (assignments, message) where message explains an empty result caused by Canvas
        """
        today = start_of_day(now or local_now())
        courses, message = self.list_courses(user_id)
        if message:
            return [], message

        upcoming = []
        for course in courses:
            course_id = field(course, "id", "course_id")
            if not course_id:
                continue
            course_name = field(course, "name", "course_name", default="Unknown Course")

            try:
                assignments = self.course_assignments(user_id, course_id)
            except (ComposioError, ValueError, TypeError) as e:
                logger.error(f"[Canvas] Error fetching assignments for course {course_id}: {e}")
                continue

            logger.info(f"[Canvas] Course {course_id} ({course_name}) assignments fetched: {len(assignments)}")

            for assignment in assignments:
                due_raw = field(assignment, "due_at", "due_date")
                due = parse_datetime(due_raw)
                if due is None or due < today:
                    continue

                upcoming.append({
                    "id": field(assignment, "id"),
                    "name": field(assignment, "name", "title", default="Untitled Assignment"),
                    "courseName": course_name,
                    "dueDate": due_raw,
                    "points": assignment.get("points_possible"),
                    "submitted": field(assignment.get("submission"), "submitted_at"),
                    "url": assignment_url(assignment, course_id, self.base_url),
                    "category": "school",
                    "_due": due,
                })

        upcoming.sort(key=lambda item: item["_due"])
        for item in upcoming:
            del item["_due"]

        logger.info(f"[Canvas] Total upcoming assignments for {user_id}: {len(upcoming)}")
        return upcoming, None
