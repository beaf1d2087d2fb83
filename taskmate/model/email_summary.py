from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from taskmate.database import Base

class EmailSummary(Base):
    """
    Claude summary of a Gmail message
    """
    __tablename__ = "email_summaries"
    __table_args__ = (
        UniqueConstraint('user_id', 'original_email_id', name='uq_user_email'),
    )

    email_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    original_email_id = Column(String(255), nullable=True)  # Gmail message id
    sender = Column(String(255), nullable=True)
    subject = Column(Text, nullable=True)
    summary_text = Column(Text, nullable=True)
    priority = Column(String(20), nullable=True)  # important / normal
    category = Column(String(50), nullable=True)  # Academic / Career / Personal / Other
    received_at = Column(DateTime(timezone=True), nullable=True)
