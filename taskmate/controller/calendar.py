import asyncio
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from taskmate.controller.auth import get_current_user
from taskmate.database import get_db
from taskmate.model.user import User
from taskmate.service.calendar_service import CalendarService
from taskmate.service.composio_service import ComposioService, ComposioError, get_composio_service
from taskmate.service.connection_service import mark_synced
from taskmate.utils.helpers import external_user_id
from taskmate.utils.response import success, fail
from taskmate.utils.logger import get_logger

logger = get_logger("calendar")

router = APIRouter()


@router.get("/events")
async def get_week_events(
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    db: Session = Depends(get_db),
):
    """
    Google Calendar events of the current week, each tagged school/work/personal
    """
    external_id = external_user_id(current_user.user_id)
    try:
        loop = asyncio.get_event_loop()
        payload = await loop.run_in_executor(None, CalendarService(composio).week_events, external_id)
    except ComposioError as e:
        logger.error(f"Error fetching calendar events for user {current_user.user_id}: {e}")
        return fail(f"Failed to fetch calendar events: {e}")

    if "message" not in payload:
        mark_synced(db, current_user.user_id, "googlecalendar")
    return success(payload, count=len(payload["events"]))
