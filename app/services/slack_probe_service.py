# =============================================================================
# app/services/slack_probe_service.py
# =============================================================================
from typing import Optional
import httpx
from app.core.config import settings
from app.core.exceptions import ProbeUnavailable
from app.core.logger import get_module_logger, mask_secret
from app.schemas.slack import ProbeResult

logger = get_module_logger(__name__, "slack_probe.log")


class SlackProbeService:
    """Confirms a token is still accepted by calling Slack's auth.test"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def verify_token(self, access_token: str) -> ProbeResult:
        """
        Returns ``valid=False`` when Slack answers and rejects the token.
        Raises ProbeUnavailable when Slack could not give an answer.
        """
        if not access_token:
            return ProbeResult(valid=False, error="not_authed")

        url = f"{settings.SLACK_API_BASE_URL}/auth.test"
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = await client.post(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"auth.test unreachable for token {mask_secret(access_token)}: {str(e)}")
            raise ProbeUnavailable(f"auth.test unreachable: {str(e)}", cause=e)

        if response.status_code == 429 or response.status_code >= 500:
            logger.warning(f"auth.test unavailable, status {response.status_code}")
            raise ProbeUnavailable(f"auth.test returned status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProbeUnavailable("auth.test returned a non-JSON body", cause=e)

        if not data.get("ok"):
            error = data.get("error", "invalid_auth")
            logger.info(f"Slack rejected token {mask_secret(access_token)}: {error}")
            return ProbeResult(valid=False, error=error)

        return ProbeResult(
            valid=True,
            team_id=data.get("team_id"),
            team_name=data.get("team"),
            slack_user_id=data.get("user_id"),
        )
