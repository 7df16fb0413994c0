# =============================================================================
# app/core/security.py
# =============================================================================
from datetime import datetime, timedelta
from jose import JWTError, jwt
from fastapi import HTTPException, status
from app.core.config import settings
from app.core.logger import get_module_logger

logger = get_module_logger(__name__, "security.log")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(user_id: str) -> str:
    """Issue a bearer token whose subject is the application user id"""
    expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode({"sub": user_id, "exp": expire}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> str:
    """Return the user id carried by a bearer token, or raise 401"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.error(f"Bearer token rejected: {str(e)}")
        raise _unauthorized()

    user_id = payload.get("sub")
    if not user_id:
        logger.error("Bearer token has no user id subject")
        raise _unauthorized()
    return user_id
