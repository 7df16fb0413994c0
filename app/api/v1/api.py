# =============================================================================
# app/api/v1/api.py
# =============================================================================
from fastapi import APIRouter
from app.api.v1.endpoints import slack_auth, users

api_router = APIRouter()

api_router.include_router(slack_auth.router, tags=["Slack Connection"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
