# =============================================================================
# app/models/slack_connection.py
# =============================================================================
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class SlackConnection(BaseModel):
    """The ``connections.slack`` sub-record of a user's profile document"""
    __tablename__ = "slack_connections"

    user_id = Column(String(128), ForeignKey("users.id"), nullable=False, unique=True, index=True)
    connected = Column(Boolean, default=False, nullable=False)
    slack_team_id = Column(String, nullable=True)
    team_name = Column(String, nullable=True)
    access_token = Column(String, nullable=True)
    slack_user_id = Column(String, nullable=True)
    scope = Column(String, nullable=True)
    connected_at = Column(DateTime, nullable=True)
    disconnected_at = Column(DateTime, nullable=True)

    # Comma-separated sha256 digests of the tokens cleared by the last disconnect
    revoked_token_fingerprints = Column(String(200), nullable=True)

    # Relationship
    user = relationship("User", back_populates="slack_connection")

    def __repr__(self):
        return f"<SlackConnection user={self.user_id} connected={self.connected} team={self.slack_team_id}>"
