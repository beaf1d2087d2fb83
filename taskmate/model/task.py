from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from taskmate.database import Base

class Task(Base):
    """
    A user's task, optionally mirrored to Google Calendar
    """
    __tablename__ = "tasks"

    task_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.category_id", ondelete="SET NULL"), nullable=True)
    category = Column(String(50), nullable=False)  # school / work / personal
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True, index=True)  # local wall-clock time in DEFAULT_TIMEZONE
    due_time = Column(String(8), nullable=True)  # HH:MM as entered
    status = Column(String(20), default="pending")
    priority = Column(String(20), default="medium")
    has_no_due_date = Column(Boolean, default=False)
    source = Column(String(50), nullable=True)  # manual
    source_id = Column(String(255), nullable=True)

    synced_to_google = Column(Boolean, default=False)
    google_event_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="tasks")
