"""
Local bookkeeping for Composio connected accounts and per-service sync times.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session
from taskmate.model.composio_connection import ComposioConnection
from taskmate.model.integration import Integration
from taskmate.utils.logger import get_logger

logger = get_logger("connection_service")


def record_connection(db: Session, user_id: int, account_id: str, service_name: str, external_id: str) -> ComposioConnection:
    """
    Upsert the row for a connected account.

    An existing row for ``account_id`` is reassigned to this user and
    service; any other row the user holds for the same service is replaced.
    """
    connection = db.query(ComposioConnection).filter(
        ComposioConnection.composio_account_id == account_id
    ).first()

    db.query(ComposioConnection).filter(
        ComposioConnection.user_id == user_id,
        ComposioConnection.service_name == service_name,
        ComposioConnection.composio_account_id != account_id,
    ).delete(synchronize_session=False)

    if connection:
        connection.user_id = user_id
        connection.service_name = service_name
        connection.external_user_id = external_id
    else:
        connection = ComposioConnection(
            user_id=user_id,
            composio_account_id=account_id,
            service_name=service_name,
            external_user_id=external_id,
        )
        db.add(connection)

    db.commit()
    db.refresh(connection)
    logger.info(f"Recorded {service_name} connection {account_id} for user {user_id}")
    return connection


def user_connections(db: Session, user_id: int, service_name: Optional[str] = None) -> list[ComposioConnection]:
    query = db.query(ComposioConnection).filter(ComposioConnection.user_id == user_id)
    if service_name:
        query = query.filter(ComposioConnection.service_name == service_name)
    return query.order_by(ComposioConnection.connection_id).all()


def forget_connection(db: Session, user_id: int, account_id: str) -> int:
    removed = db.query(ComposioConnection).filter(
        ComposioConnection.user_id == user_id,
        ComposioConnection.composio_account_id == account_id,
    ).delete(synchronize_session=False)
    db.commit()
    return removed


def mark_synced(db: Session, user_id: int, service_name: str) -> Integration:
    """Stamp the last successful read from ``service_name``."""
    integration = db.query(Integration).filter(
        Integration.user_id == user_id,
        Integration.service_name == service_name,
    ).first()
    if integration is None:
        integration = Integration(user_id=user_id, service_name=service_name)
        db.add(integration)
    integration.last_synced_at = datetime.now(timezone.utc)
    db.commit()
    return integration
