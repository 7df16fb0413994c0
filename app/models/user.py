# =============================================================================
# app/models/user.py
# =============================================================================
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class User(BaseModel):
    __tablename__ = "users"

    # Application user ids come from the identity provider, not from uuid4
    id = Column(String(128), primary_key=True)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, nullable=True, index=True)

    # Relationships
    slack_connection = relationship(
        "SlackConnection", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
