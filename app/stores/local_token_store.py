# =============================================================================
# app/stores/local_token_store.py
# =============================================================================
"""
Device-scoped Slack token store.

Holds a single ``{accessToken, teamId, userId}`` record in a JSON file,
encrypted with Fernet when ``TOKEN_ENCRYPTION_KEY`` is configured. The three
coroutines mirror the desktop shell's IPC surface and are all idempotent.
"""
import asyncio
import json
import os
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from app.core.config import settings
from app.core.exceptions import StoreUnavailable
from app.core.logger import get_module_logger, mask_secret
from app.schemas.slack import LocalSlackTokens

logger = get_module_logger(__name__, "local_token_store.log")


class LocalTokenStore:
    """Encrypted key-value file for the device's Slack tokens"""

    def __init__(self, path: Optional[str] = None, encryption_key: Optional[Union[str, bytes]] = None):
        self.path = path or settings.LOCAL_STORE_PATH
        key = encryption_key if encryption_key is not None else settings.TOKEN_ENCRYPTION_KEY
        if key:
            self._fernet = Fernet(key.encode() if isinstance(key, str) else key)
        else:
            self._fernet = None
            logger.warning(f"Local token store at {self.path} is not encrypted")

    @property
    def encrypted(self) -> bool:
        return self._fernet is not None

    async def get_slack_tokens(self) -> LocalSlackTokens:
        """Return the stored record; an empty record when nothing is stored"""
        return await asyncio.to_thread(self._read)

    async def set_slack_tokens(self, tokens: LocalSlackTokens) -> bool:
        logger.info(
            f"Storing Slack tokens locally: team={tokens.team_id} user={tokens.user_id} "
            f"token={mask_secret(tokens.access_token)}"
        )
        await asyncio.to_thread(self._write, tokens)
        return True

    async def clear_slack_tokens(self) -> bool:
        await asyncio.to_thread(self._delete)
        logger.info("Cleared local Slack tokens")
        return True

    # -------------------------------------------------------------------------
    # File access
    # -------------------------------------------------------------------------

    def _read(self) -> LocalSlackTokens:
        if not os.path.exists(self.path):
            return LocalSlackTokens()
        try:
            with open(self.path, "rb") as fh:
                raw = fh.read()
            if self._fernet is not None:
                raw = self._fernet.decrypt(raw)
            return LocalSlackTokens.model_validate(json.loads(raw))
        except InvalidToken as e:
            logger.error(f"Local token store could not be decrypted: {self.path}")
            raise StoreUnavailable("Local token store could not be decrypted", cause=e)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read local token store {self.path}: {str(e)}")
            raise StoreUnavailable(f"Failed to read local token store: {str(e)}", cause=e)

    def _write(self, tokens: LocalSlackTokens) -> None:
        data = json.dumps(tokens.model_dump(by_alias=True)).encode("utf-8")
        if self._fernet is not None:
            data = self._fernet.encrypt(data)
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = f"{self.path}.tmp"
        try:
            os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "wb") as fh:
                fh.write(data)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write local token store {self.path}: {str(e)}")
            raise StoreUnavailable(f"Failed to write local token store: {str(e)}", cause=e)

    def _delete(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to clear local token store {self.path}: {str(e)}")
            raise StoreUnavailable(f"Failed to clear local token store: {str(e)}", cause=e)
