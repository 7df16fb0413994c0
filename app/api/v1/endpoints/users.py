# =============================================================================
# app/api/v1/endpoints/users.py
# =============================================================================
from fastapi import APIRouter, Depends
from app.schemas.user import UserResponse
from app.schemas.slack import SlackConnectionResponse
from app.core.dependencies import get_current_user, get_reconciler
from app.core.exceptions import SlackConnectionError
from app.models.user import User
from app.services.connection_reconciler import ConnectionReconciler
from app.core.logger import get_module_logger

logger = get_module_logger(__name__, "users.log")

router = APIRouter()

@router.get("/me", response_model=UserResponse, status_code=200)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
    reconciler: ConnectionReconciler = Depends(get_reconciler)
):
    """Get current user information with the reconciled Slack connection"""
    slack_connection = None
    try:
        record = await reconciler.get_status(current_user.id)
        slack_connection = SlackConnectionResponse.from_record(current_user.id, record)
    except SlackConnectionError as e:
        logger.warning(f"Slack status unavailable for user {current_user.id}: {e.detail}")

    return UserResponse(
        id=current_user.id,
        name=current_user.name,
        email=current_user.email,
        created_at=current_user.created_at,
        updated_at=current_user.updated_at,
        slack_connection=slack_connection
    )
