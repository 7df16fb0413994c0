# =============================================================================
# app/api/relay.py
# =============================================================================
"""
OAuth redirect target and token relay.

Slack redirects the browser here; the callback forwards the query string to
the desktop shell's custom URI scheme. In relay mode the callback exchanges
the code first and parks the token so the desktop app can fetch it by code.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from urllib.parse import urlencode
from datetime import datetime
from typing import Dict, Optional
from app.core.config import settings
from app.core.dependencies import get_token_relay
from app.core.exceptions import ExchangeFailed, InvalidRequest
from app.core.logger import get_module_logger
from app.schemas.slack import RelayOAuthRequest
from app.services.slack_oauth_service import DirectExchange
from app.services.token_relay_service import TokenRelayService

logger = get_module_logger(__name__, "relay.log")

router = APIRouter()

def get_direct_exchange(request: Request) -> DirectExchange:
    return request.app.state.direct_exchange

def _redirect_to_desktop(params: Dict[str, Optional[str]]) -> RedirectResponse:
    """Hand the OAuth result to the desktop protocol handler"""
    query = urlencode({key: value for key, value in params.items() if value is not None})
    redirect_url = f"{settings.DESKTOP_URI_SCHEME}://slack/oauth/callback?{query}"
    return RedirectResponse(url=redirect_url, status_code=status.HTTP_302_FOUND)

# =============================================================================
# OAUTH CALLBACK HANDLER
# =============================================================================

@router.get("/slack/oauth/callback", status_code=status.HTTP_302_FOUND)
async def slack_oauth_callback(
    request: Request,
    relay: TokenRelayService = Depends(get_token_relay),
    exchanger: DirectExchange = Depends(get_direct_exchange)
):
    """Forward Slack's redirect to the desktop app, surfacing any error"""
    error = request.query_params.get("error")
    code = request.query_params.get("code")
    state = request.query_params.get("state")

    if error:
        logger.error(f"Slack OAuth error: {error}")
        return _redirect_to_desktop({"error": error, "state": state})

    if not code:
        logger.error("No authorization code received from Slack")
        return _redirect_to_desktop({"error": "missing_code", "state": state})

    if settings.SLACK_EXCHANGE_MODE == "relay":
        try:
            payload = await exchanger.exchange(code, state)
        except (ExchangeFailed, InvalidRequest) as e:
            logger.error(f"Relay token exchange failed: {e.detail}")
            return _redirect_to_desktop({"error": e.detail, "state": state})
        relay.put(code, payload, state)

    logger.info(f"Forwarding Slack OAuth callback to desktop app for state {state}")
    return _redirect_to_desktop({"code": code, "state": state})

# =============================================================================
# TOKEN RELAY
# =============================================================================

@router.post("/api/slack/oauth")
async def relay_exchange_code(
    body: RelayOAuthRequest,
    relay: TokenRelayService = Depends(get_token_relay),
    exchanger: DirectExchange = Depends(get_direct_exchange)
):
    """Exchange a code with Slack on behalf of a client without the app secret"""
    try:
        payload = await exchanger.exchange(body.code, body.user_id)
    except InvalidRequest as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.detail})
    except ExchangeFailed as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": e.detail})
    except Exception as e:
        logger.error(f"Slack OAuth relay error: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to authenticate with Slack"}
        )

    relay.put(body.code, payload, body.user_id)
    return payload.model_dump(exclude_none=True)

@router.get("/api/slack/token/{code}")
async def relay_get_token(
    code: str,
    userId: Optional[str] = None,
    relay: TokenRelayService = Depends(get_token_relay)
):
    """Token the relay exchanged for ``code``; 404 when it has none"""
    payload = relay.take(code, userId)
    if payload is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Token not found", "code": code, "userId": userId}
        )
    return payload.model_dump(exclude_none=True)

@router.get("/api/health")
async def relay_health():
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}
