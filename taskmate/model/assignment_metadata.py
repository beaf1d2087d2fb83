from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from taskmate.database import Base

class AssignmentMetadata(Base):
    """
    User-maintained planning fields for a Canvas assignment
    """
    __tablename__ = "assignment_metadata"
    __table_args__ = (
        UniqueConstraint('user_id', 'assignment_id', name='uq_user_assignment'),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    assignment_id = Column(String(64), nullable=False)  # Canvas assignment id
    priority = Column(String(10), nullable=True)  # low / medium / high
    estimated_hours = Column(Numeric(6, 2), nullable=True)
    status = Column(String(20), nullable=True)  # not_started / in_progress / done
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
