import asyncio
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from taskmate.controller.auth import get_current_user
from taskmate.database import get_db
from taskmate.model.user import User
from taskmate.model.email_summary import EmailSummary
from taskmate.service.composio_service import ComposioService, ComposioError, get_composio_service
from taskmate.service.connection_service import mark_synced
from taskmate.service.email_analyzer import EmailAnalyzer, get_email_analyzer
from taskmate.service.gmail_service import GmailService
from taskmate.utils.helpers import external_user_id, parse_datetime
from taskmate.utils.response import success, fail
from taskmate.utils.logger import get_logger

logger = get_logger("gmail")

router = APIRouter()


def store_summaries(db: Session, user_id: int, emails: list[dict]) -> None:
    """
    Upsert one email_summaries row per analysed message; a repeated id is written once.
    """
    by_id = {}
    for email in emails:
        by_id.setdefault(email["id"], email)
    if not by_id:
        return
    ids = list(by_id)
    existing = {
        row.original_email_id: row
        for row in db.query(EmailSummary).filter(
            EmailSummary.user_id == user_id,
            EmailSummary.original_email_id.in_(ids),
        ).all()
    }
    for email in by_id.values():
        row = existing.get(email["id"])
        if row is None:
            row = EmailSummary(user_id=user_id, original_email_id=email["id"])
            db.add(row)
        row.sender = email["sender"]
        row.subject = email["subject"]
        row.summary_text = email["summary"]
        row.priority = email["priority"]
        row.category = email["category"]
        row.received_at = parse_datetime(email.get("receivedAt"))
    db.commit()


@router.get("/emails")
async def get_sent_emails(
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    analyzer: EmailAnalyzer = Depends(get_email_analyzer),
    db: Session = Depends(get_db),
):
    """
    The user's ten latest sent emails, each summarised and classified by Claude
    """
    try:
        loop = asyncio.get_event_loop()
        emails, message = await loop.run_in_executor(
            None, GmailService(composio, analyzer).sent_digest, external_user_id(current_user.user_id)
        )
    except ComposioError as e:
        logger.error(f"Error fetching Gmail emails for user {current_user.user_id}: {e}")
        return fail(f"Failed to fetch emails: {e}")

    if message:
        return success({"emails": [], "message": message}, msg=message, count=0)

    try:
        store_summaries(db, current_user.user_id, emails)
        mark_synced(db, current_user.user_id, "gmail")
    except Exception as e:
        db.rollback()
        logger.error(f"Error storing email summaries: {e}")

    return success({"emails": emails}, count=len(emails))


@router.get("/summaries")
async def get_summaries(
    skip: int = 0,
    limit: int = 50,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(EmailSummary).filter(EmailSummary.user_id == current_user.user_id)
    total = query.count()
    rows = query.order_by(EmailSummary.received_at.desc(), EmailSummary.email_id.desc()).offset(skip).limit(limit).all()
    response_data = [
        {
            "id": row.original_email_id,
            "sender": row.sender,
            "subject": row.subject,
            "summary": row.summary_text,
            "priority": row.priority,
            "category": row.category,
            "receivedAt": row.received_at,
        } for row in rows
    ]
    return success(response_data, count=total)
