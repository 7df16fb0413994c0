# =============================================================================
# app/db/init_db.py
# =============================================================================
from app.db.base import Base
from app.db.session import engine
from app.models.user import User  # noqa: F401
from app.models.slack_connection import SlackConnection  # noqa: F401

def init_db(bind=None):
    """Initialize database tables"""
    Base.metadata.create_all(bind=bind or engine)
