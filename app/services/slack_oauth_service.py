# =============================================================================
# app/services/slack_oauth_service.py
# =============================================================================
from typing import Any, Dict, Optional
from urllib.parse import urlencode
import httpx
from pydantic import ValidationError
from app.core.config import settings
from app.core.exceptions import ExchangeFailed, InvalidRequest
from app.core.logger import get_module_logger, mask_secret
from app.schemas.slack import SlackTokenPayload

logger = get_module_logger(__name__, "slack_oauth.log")

SLACK_AUTHORIZE_URL = "https://slack.com/oauth/v2/authorize"


def build_authorize_url(user_id: str) -> str:
    """Slack authorize URL carrying the application user id as ``state``"""
    query = urlencode({
        "client_id": settings.SLACK_CLIENT_ID or "",
        "scope": settings.SLACK_SCOPES,
        "redirect_uri": settings.SLACK_REDIRECT_URI,
        "state": user_id,
    })
    return f"{SLACK_AUTHORIZE_URL}?{query}"


def _require_code(code: Optional[str]) -> str:
    if not code or not code.strip():
        logger.error("Token exchange requested without an authorization code")
        raise InvalidRequest("Authorization code is required")
    return code.strip()


def _parse_payload(data: Dict[str, Any]) -> SlackTokenPayload:
    try:
        return SlackTokenPayload.model_validate(data)
    except ValidationError as e:
        logger.error(f"Malformed token payload: {e}")
        raise ExchangeFailed("Malformed token payload", cause=e)


class DirectExchange:
    """Exchange the code with Slack's oauth.v2.access using the app credentials"""

    mode = "direct"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def exchange(self, code: str, user_id: Optional[str] = None) -> SlackTokenPayload:
        code = _require_code(code)
        url = f"{settings.SLACK_API_BASE_URL}/oauth.v2.access"
        data = {
            "client_id": settings.SLACK_CLIENT_ID,
            "client_secret": settings.SLACK_CLIENT_SECRET,
            "code": code,
            "redirect_uri": settings.SLACK_REDIRECT_URI,
        }

        logger.info(f"Exchanging Slack code {mask_secret(code)} for user {user_id or 'unknown'}")
        try:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = await client.post(url, data=data)
                token_data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"HTTP error during token exchange: {str(e)}")
            raise ExchangeFailed(f"Token exchange request failed: {str(e)}", cause=e)

        if not token_data.get("ok"):
            error_msg = token_data.get("error", "Token exchange failed")
            logger.error(f"Token exchange failed: {error_msg}")
            raise ExchangeFailed(error_msg)

        payload = _parse_payload(token_data)
        logger.info(f"Token exchange succeeded for team {payload.team.id if payload.team else 'unknown'}")
        return payload


class RelayExchange:
    """Fetch a token the relay already exchanged during the OAuth redirect"""

    mode = "relay"

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.RELAY_BASE_URL).rstrip("/")
        self.transport = transport

    async def exchange(self, code: str, user_id: Optional[str] = None) -> SlackTokenPayload:
        code = _require_code(code)
        url = f"{self.base_url}/api/slack/token/{code}"
        params = {"userId": user_id} if user_id else None

        logger.info(f"Looking up relayed Slack token for code {mask_secret(code)}")
        try:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error during relay token lookup: {str(e)}")
            raise ExchangeFailed(f"Token relay request failed: {str(e)}", cause=e)

        if response.status_code == 404:
            logger.warning("Token relay has no token for this code")
            raise ExchangeFailed("token_not_found")
        try:
            token_data = response.json()
        except ValueError as e:
            raise ExchangeFailed(f"Token relay returned status {response.status_code}", cause=e)
        if response.status_code != 200 or token_data.get("ok") is False:
            error_msg = token_data.get("error", f"Token relay returned status {response.status_code}")
            logger.error(f"Relay token lookup failed: {error_msg}")
            raise ExchangeFailed(error_msg)

        return _parse_payload(token_data)


def get_exchange_strategy(mode: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
    """Strategy configured by SLACK_EXCHANGE_MODE"""
    mode = mode or settings.SLACK_EXCHANGE_MODE
    if mode == "relay":
        return RelayExchange(transport=transport)
    return DirectExchange(transport=transport)
