# =============================================================================
# app/services/token_relay_service.py
# =============================================================================
from typing import Optional
from pydantic import BaseModel
from app.core.config import settings
from app.core.logger import get_module_logger
from app.schemas.slack import SlackTokenPayload
from app.utils.ttl_cache import TTLCache

logger = get_module_logger(__name__, "token_relay.log")


class _RelayEntry(BaseModel):
    code: str
    payload: SlackTokenPayload


class TokenRelayService:
    """
    Short-lived store for tokens the relay has already exchanged.

    Entries are keyed by application user id when the OAuth state carried one,
    and by the authorization code otherwise. Each entry remembers the code it
    was exchanged for, so a lookup must present the same code. Entries are
    consumed by the first successful lookup.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, maxsize: Optional[int] = None):
        self._cache = TTLCache(
            ttl_seconds=ttl_seconds if ttl_seconds is not None else settings.RELAY_TOKEN_TTL_SECONDS,
            maxsize=maxsize if maxsize is not None else settings.RELAY_TOKEN_CACHE_SIZE,
        )

    @staticmethod
    def cache_key(code: str, user_id: Optional[str] = None) -> str:
        return f"user:{user_id}" if user_id else f"code:{code}"

    def put(self, code: str, payload: SlackTokenPayload, user_id: Optional[str] = None) -> None:
        key = self.cache_key(code, user_id)
        self._cache.set(key, _RelayEntry(code=code, payload=payload))
        logger.info(f"Cached exchanged Slack token under {key.split(':')[0]} key")

    def take(self, code: str, user_id: Optional[str] = None) -> Optional[SlackTokenPayload]:
        """Return and remove the payload exchanged for ``code``"""
        key = self.cache_key(code, user_id)
        entry = self._cache.get(key)
        if entry is None or entry.code != code:
            logger.warning(f"No cached Slack token for {key.split(':')[0]} key")
            return None
        self._cache.pop(key)
        return entry.payload
