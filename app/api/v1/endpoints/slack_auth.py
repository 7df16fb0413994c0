# =============================================================================
# app/api/v1/endpoints/slack_auth.py
# =============================================================================

from fastapi import APIRouter, Depends, HTTPException, status
from datetime import datetime
from app.core.dependencies import get_current_user_id, get_reconciler
from app.core.exceptions import SlackConnectionError, StoreUnavailable
from app.services.connection_reconciler import ConnectionReconciler
from app.services.slack_oauth_service import build_authorize_url
from app.schemas.slack import SlackConnectionResponse, SlackOAuthCompleteRequest
from app.core.config import settings
from app.core.logger import get_module_logger
from typing import Dict

logger = get_module_logger(__name__, "slack_auth.log")

router = APIRouter()

def raise_for_connection_error(error: SlackConnectionError) -> None:
    """Translate a connection error into the HTTP error the client sees"""
    if isinstance(error, StoreUnavailable):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Connection store unavailable: {error.detail}"
        )
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"{type(error).__name__}: {error.detail}"
    )

# =============================================================================
# OAUTH START
# =============================================================================

@router.get("/slack/auth-url", status_code=status.HTTP_200_OK)
async def get_slack_auth_url(user_id: str = Depends(get_current_user_id)) -> Dict[str, str]:
    """Slack OAuth authorization URL for the authenticated user"""
    if not settings.SLACK_CLIENT_ID:
        logger.error("Slack OAuth2 client id is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Slack OAuth2 is not configured"
        )

    logger.info(f"Generating Slack OAuth URL for user: {user_id}")
    return {
        "auth_url": build_authorize_url(user_id),
        "state": user_id,
        "redirect_uri": settings.SLACK_REDIRECT_URI
    }

# =============================================================================
# CONNECTION LIFECYCLE
# =============================================================================

@router.get("/slack/connection", response_model=SlackConnectionResponse, status_code=status.HTTP_200_OK)
async def get_slack_connection(
    user_id: str = Depends(get_current_user_id),
    reconciler: ConnectionReconciler = Depends(get_reconciler)
):
    """Reconciled Slack connection status for the current user"""
    try:
        record = await reconciler.get_status(user_id)
    except SlackConnectionError as e:
        logger.error(f"Failed to get Slack status for user {user_id}: {e.detail}")
        raise_for_connection_error(e)
    return SlackConnectionResponse.from_record(user_id, record)

@router.post("/slack/connection", response_model=SlackConnectionResponse, status_code=status.HTTP_200_OK)
async def complete_slack_connection(
    request: SlackOAuthCompleteRequest,
    user_id: str = Depends(get_current_user_id),
    reconciler: ConnectionReconciler = Depends(get_reconciler)
):
    """
    Finish the OAuth flow handed over by the desktop protocol handler

    The state returned by Slack must name the authenticated user.
    """
    if request.state and request.state != user_id:
        logger.error(f"OAuth state {request.state} does not match user {user_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="OAuth state does not belong to the current user"
        )

    try:
        record = await reconciler.complete_oauth(request.code, user_id)
    except SlackConnectionError as e:
        logger.error(f"Slack connection failed for user {user_id}: {e.detail}")
        raise_for_connection_error(e)

    logger.info(f"Slack connection completed for user {user_id}, team {record.team_name}")
    return SlackConnectionResponse.from_record(user_id, record)

@router.delete("/slack/connection", status_code=status.HTTP_200_OK)
async def disconnect_slack(
    user_id: str = Depends(get_current_user_id),
    reconciler: ConnectionReconciler = Depends(get_reconciler)
):
    """Disconnect the current user's Slack account"""
    try:
        await reconciler.clear_connection(user_id)
    except SlackConnectionError as e:
        raise_for_connection_error(e)

    logger.info(f"Slack disconnected for user: {user_id}")
    return {"message": "Slack account disconnected successfully"}

# =============================================================================
# HEALTH CHECK
# =============================================================================

@router.get("/slack/health", status_code=status.HTTP_200_OK)
async def slack_health_check():
    """Health check for Slack integration"""
    return {
        "status": "healthy",
        "service": "slack_integration",
        "slack_configured": bool(settings.SLACK_CLIENT_ID and settings.SLACK_CLIENT_SECRET),
        "exchange_mode": settings.SLACK_EXCHANGE_MODE,
        "timestamp": datetime.utcnow().isoformat()
    }
