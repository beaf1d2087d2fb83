from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from taskmate.database import Base

class Integration(Base):
    """
    Per-service sync bookkeeping (last successful sync of a connected service)
    """
    __tablename__ = "integrations"

    integration_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    service_name = Column(String(100), nullable=False)
    auth_token = Column(Text, nullable=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
