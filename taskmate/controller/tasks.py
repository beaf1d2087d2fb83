import asyncio
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from taskmate.controller.auth import get_current_user
from taskmate.database import get_db
from taskmate.model.user import User
from taskmate.model.task import Task
from taskmate.model.category import Category
from taskmate.schemas.task import TaskCreate, TaskUpdate, TaskResponse
from taskmate.service.calendar_service import CalendarService
from taskmate.service.composio_service import ComposioService, ComposioError, get_composio_service
from taskmate.utils.helpers import external_user_id, combine_due
from taskmate.utils.response import success, fail
from taskmate.utils.logger import get_logger

logger = get_logger("tasks")

router = APIRouter()


def get_user_task(db: Session, user_id: int, task_id: int) -> Optional[Task]:
    return db.query(Task).filter(Task.task_id == task_id, Task.user_id == user_id).first()


def owns_category(db: Session, user_id: int, category_id: int) -> bool:
    return db.query(Category).filter(
        Category.category_id == category_id,
        Category.user_id == user_id,
    ).first() is not None


async def sync_to_calendar(task: Task, composio: ComposioService, db: Session) -> None:
    """
    Mirror a dated task into Google Calendar; failures are logged and the task is kept.
    """
    try:
        loop = asyncio.get_event_loop()
        event_id = await loop.run_in_executor(
            None,
            CalendarService(composio).create_event,
            external_user_id(task.user_id),
            task.title,
            task.description,
            task.due_date,
        )
    except ComposioError as e:
        logger.error(f"Error syncing task {task.task_id} to Google Calendar: {e}")
        return

    if event_id:
        task.google_event_id = event_id
        task.synced_to_google = True
        db.commit()
        db.refresh(task)


@router.post("")
async def create_task(
    task: TaskCreate,
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    db: Session = Depends(get_db),
):
    """
    Create a manual task; dated tasks are also added to Google Calendar
    """
    if not task.title or not task.category or not task.priority:
        return fail("Title, category, and priority are required")

    if task.category_id is not None and not owns_category(db, current_user.user_id, task.category_id):
        return fail("Category not found")

    due = None
    if not task.has_no_due_date and task.due_date:
        try:
            due = combine_due(task.due_date, task.due_time)
        except ValueError:
            return fail("Invalid due date or time")

    try:
        db_task = Task(
            user_id=current_user.user_id,
            category=task.category,
            category_id=task.category_id,
            title=task.title,
            description=task.description,
            due_date=due,
            due_time=task.due_time,
            priority=task.priority,
            has_no_due_date=bool(task.has_no_due_date),
            source="manual",
        )
        db.add(db_task)
        db.commit()
        db.refresh(db_task)
    except Exception as e:
        db.rollback()
        return fail(f"Failed to create task: {str(e)}")

    if db_task.due_date is not None:
        await sync_to_calendar(db_task, composio, db)

    return success(TaskResponse.model_validate(db_task), msg="Task created")


@router.get("")
async def get_tasks(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    All of the user's tasks, soonest due first and undated tasks last
    """
    tasks = db.query(Task).filter(Task.user_id == current_user.user_id).order_by(
        Task.due_date.is_(None),
        Task.due_date.asc(),
        Task.task_id.asc(),
    ).all()
    return success([TaskResponse.model_validate(task) for task in tasks], count=len(tasks))


@router.get("/{task_id}")
async def get_task(
    task_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task = get_user_task(db, current_user.user_id, task_id)
    if not task:
        return fail("Task not found")
    return success(TaskResponse.model_validate(task))


@router.put("/{task_id}")
async def update_task(
    task_id: int,
    update: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Partial update; only fields present in the body change
    """
    task = get_user_task(db, current_user.user_id, task_id)
    if not task:
        return fail("Task not found")

    update_data = update.model_dump(exclude_unset=True)

    if "title" in update_data and not update_data["title"]:
        return fail("Title cannot be empty")
    if update_data.get("category_id") is not None and not owns_category(db, current_user.user_id, update_data["category_id"]):
        return fail("Category not found")

    if "due_date" in update_data:
        due_time = update_data.get("due_time", task.due_time)
        try:
            update_data["due_date"] = combine_due(update_data["due_date"], due_time) if update_data["due_date"] else None
        except ValueError:
            return fail("Invalid due date or time")

    try:
        for key, value in update_data.items():
            setattr(task, key, value)
        if task.has_no_due_date:
            task.due_date = None
        task.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(task)
        return success(TaskResponse.model_validate(task), msg="Task updated")
    except Exception as e:
        db.rollback()
        return fail(f"Failed to update task: {str(e)}")


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    db: Session = Depends(get_db),
):
    task = get_user_task(db, current_user.user_id, task_id)
    if not task:
        return fail("Task not found")

    if task.google_event_id:
        try:
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(
                None,
                CalendarService(composio).delete_event,
                external_user_id(current_user.user_id),
                task.google_event_id,
            )
        except ComposioError as e:
            logger.error(f"Error deleting Google Calendar event {task.google_event_id}: {e}")

    try:
        db.delete(task)
        db.commit()
        return success(msg="Task deleted")
    except Exception as e:
        db.rollback()
        return fail(f"Failed to delete task: {str(e)}")
