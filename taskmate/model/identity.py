from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from taskmate.database import Base

class Identity(Base):
    """
    OAuth provider identity linked to a user
    """
    __tablename__ = "identities"
    __table_args__ = (
        UniqueConstraint('provider', 'provider_user_id', name='uq_identity_provider_user'),
    )

    identity_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    provider = Column(String(50), nullable=False)  # github
    provider_user_id = Column(String(255), nullable=False)
    provider_username = Column(String(255), nullable=True)
    avatar_url = Column(Text, nullable=True)
    access_token_encrypted = Column(Text, nullable=True)
    refresh_token_encrypted = Column(Text, nullable=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)
    scopes = Column(Text, nullable=True)
    profile_json = Column(JSON, nullable=True)  # raw provider profile
    linked_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="identities")
