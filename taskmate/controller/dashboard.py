import asyncio
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from taskmate.controller.auth import get_current_user
from taskmate.controller.canvas import load_assignments
from taskmate.database import get_db
from taskmate.model.user import User
from taskmate.model.task import Task
from taskmate.service.calendar_service import CalendarService
from taskmate.service.composio_service import ComposioService, ComposioError, get_composio_service
from taskmate.service.planner import merge_calendar, build_todo
from taskmate.utils.helpers import external_user_id
from taskmate.utils.response import success
from taskmate.utils.logger import get_logger

logger = get_logger("dashboard")

router = APIRouter()


async def week_events(current_user: User, composio: ComposioService) -> list[dict]:
    try:
        loop = asyncio.get_event_loop()
        payload = await loop.run_in_executor(
            None, CalendarService(composio).week_events, external_user_id(current_user.user_id)
        )
    except ComposioError as e:
        logger.error(f"Dashboard calendar events unavailable for user {current_user.user_id}: {e}")
        return []
    return payload["events"]


async def upcoming_assignments(current_user: User, composio: ComposioService, db: Session) -> list[dict]:
    try:
        assignments, _ = await load_assignments(current_user, composio, db)
    except ComposioError as e:
        logger.error(f"Dashboard Canvas assignments unavailable for user {current_user.user_id}: {e}")
        return []
    return assignments


def user_tasks(db: Session, user_id: int) -> list[Task]:
    return db.query(Task).filter(Task.user_id == user_id).all()


@router.get("/calendar")
async def dashboard_calendar(
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    db: Session = Depends(get_db),
):
    """
    Calendar events, dated tasks and Canvas due dates in one colour-coded feed
    """
    events = await week_events(current_user, composio)
    assignments = await upcoming_assignments(current_user, composio, db)
    entries = merge_calendar(events, user_tasks(db, current_user.user_id), assignments)
    return success(entries, count=len(entries))


@router.get("/todo")
async def dashboard_todo(
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    db: Session = Depends(get_db),
):
    """
    Open tasks and assignments ordered by priority, then due date
    """
    assignments = await upcoming_assignments(current_user, composio, db)
    items = build_todo(user_tasks(db, current_user.user_id), assignments)
    return success(items, count=len(items))
