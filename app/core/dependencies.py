# =============================================================================
# app/core/dependencies.py
# =============================================================================
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.models.user import User
from app.core.security import verify_token
from app.core.logger import get_module_logger
from app.services.connection_reconciler import ConnectionReconciler
from app.services.token_relay_service import TokenRelayService
from typing import Optional

logger = get_module_logger(__name__, "dependencies.log")

security = HTTPBearer(auto_error=False)  # Don't auto-error, handle manually

def get_current_user_id(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    """Get current application user id from JWT token (header only)"""
    if credentials is None:
        logger.error("No token provided in Authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authentication token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return verify_token(credentials.credentials)

def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> User:
    """Get current user from database"""
    user = db.get(User, user_id)
    if user is None:
        logger.error(f"User not found: {user_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user

def get_reconciler(request: Request) -> ConnectionReconciler:
    return request.app.state.reconciler

def get_token_relay(request: Request) -> TokenRelayService:
    return request.app.state.token_relay
