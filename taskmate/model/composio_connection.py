from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from taskmate.database import Base

class ComposioConnection(Base):
    """
    A Composio connected account owned by a user (one per service)
    """
    __tablename__ = "composio_connections"
    __table_args__ = (
        UniqueConstraint('composio_account_id', name='uq_composio_account'),
        UniqueConstraint('user_id', 'service_name', name='uq_user_service'),
    )

    connection_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    composio_account_id = Column(String(255), nullable=False)
    service_name = Column(String(100), nullable=False)  # gmail / googlecalendar / googlemeetings / canvas
    external_user_id = Column(String(255), nullable=False)  # user_<user_id>
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="connections")
