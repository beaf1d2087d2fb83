import asyncio
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from taskmate.controller.auth import get_current_user
from taskmate.database import get_db
from taskmate.model.user import User
from taskmate.model.assignment_metadata import AssignmentMetadata
from taskmate.schemas.canvas import AssignmentMetadataUpdate
from taskmate.service.canvas_service import CanvasService
from taskmate.service.composio_service import ComposioService, ComposioError, get_composio_service
from taskmate.service.connection_service import mark_synced
from taskmate.utils.helpers import external_user_id
from taskmate.utils.response import success, fail
from taskmate.utils.logger import get_logger

logger = get_logger("canvas")

router = APIRouter()

DEFAULT_METADATA = {
    "priority": "medium",
    "estimatedHours": None,
    "status": "not_started",
}


def metadata_view(row: AssignmentMetadata) -> dict:
    return {
        "priority": row.priority or DEFAULT_METADATA["priority"],
        "estimatedHours": float(row.estimated_hours) if row.estimated_hours is not None else None,
        "status": row.status or DEFAULT_METADATA["status"],
    }


def merge_metadata(db: Session, user_id: int, assignments: list[dict]) -> list[dict]:
    """
    Attach the user's stored priority, estimate and status to each assignment.
    """
    ids = [str(assignment["id"]) for assignment in assignments if assignment.get("id") is not None]
    stored = {}
    if ids:
        rows = db.query(AssignmentMetadata).filter(
            AssignmentMetadata.user_id == user_id,
            AssignmentMetadata.assignment_id.in_(ids),
        ).all()
        stored = {row.assignment_id: metadata_view(row) for row in rows}

    return [
        {**assignment, **stored.get(str(assignment.get("id")), DEFAULT_METADATA)}
        for assignment in assignments
    ]


async def load_assignments(current_user: User, composio: ComposioService, db: Session) -> tuple[list[dict], str]:
    """
    Upcoming assignments with metadata merged; raises ComposioError when Canvas cannot be read.
    """
    loop = asyncio.get_event_loop()
    assignments, message = await loop.run_in_executor(
        None, CanvasService(composio).upcoming_assignments, external_user_id(current_user.user_id)
    )
    if not message:
        mark_synced(db, current_user.user_id, "canvas")
    return merge_metadata(db, current_user.user_id, assignments), message


@router.get("/assignments")
async def get_assignments(
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    db: Session = Depends(get_db),
):
    try:
        assignments, message = await load_assignments(current_user, composio, db)
    except ComposioError as e:
        logger.error(f"[Canvas] Error fetching assignments for user {current_user.user_id}: {e}")
        return fail(f"Failed to fetch Canvas assignments: {e}")

    return success({"assignments": assignments, "message": message}, msg=message or "OK", count=len(assignments))


@router.put("/assignments/{assignment_id}/metadata")
async def update_assignment_metadata(
    assignment_id: str,
    update: AssignmentMetadataUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Save planning fields for an assignment; omitted fields keep their stored value
    """
    if not assignment_id.strip():
        return fail("assignmentId is required")

    try:
        row = db.query(AssignmentMetadata).filter(
            AssignmentMetadata.user_id == current_user.user_id,
            AssignmentMetadata.assignment_id == assignment_id,
        ).first()
        if row is None:
            row = AssignmentMetadata(user_id=current_user.user_id, assignment_id=assignment_id)
            db.add(row)

        if update.priority is not None:
            row.priority = update.priority
        if update.estimated_hours is not None:
            row.estimated_hours = update.estimated_hours
        if update.status is not None:
            row.status = update.status

        db.commit()
        db.refresh(row)
        return success(metadata_view(row), msg="Assignment metadata updated")
    except Exception as e:
        db.rollback()
        return fail(f"Failed to update assignment metadata: {str(e)}")
