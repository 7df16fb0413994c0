# =============================================================================
# app/schemas/user.py
# =============================================================================
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from app.schemas.slack import SlackConnectionResponse

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    slack_connection: Optional[SlackConnectionResponse] = None
