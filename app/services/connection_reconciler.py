# =============================================================================
# app/services/connection_reconciler.py
# =============================================================================
"""
Slack connection reconciliation.

The connection lives in two places that are written without a shared
transaction: the remote profile store (multi-device source of truth) and the
local token store (device cache that survives restarts and offline use).
Every read recomputes the authoritative status from both and repairs
whichever side is stale. Writes are idempotent upserts, so concurrent reads
and writes for the same user may interleave without locking.
"""
from typing import Any, Dict, Optional, Union
from pydantic import ValidationError
from app.core.exceptions import InvalidRequest, MissingField, ProbeUnavailable, StoreUnavailable
from app.core.logger import get_module_logger, mask_secret
from app.schemas.slack import ConnectionEvent, ConnectionRecord, LocalSlackTokens, SlackTokenPayload
from app.services.connection_events import ConnectionEvents
from app.services.slack_oauth_service import get_exchange_strategy
from app.services.slack_probe_service import SlackProbeService
from app.stores.local_token_store import LocalTokenStore
from app.stores.profile_store import ProfileStore

logger = get_module_logger(__name__, "connection_reconciler.log")


class ConnectionReconciler:
    """Single authoritative view of a user's Slack connection"""

    def __init__(
        self,
        profile_store: ProfileStore,
        local_store: LocalTokenStore,
        probe: Optional[SlackProbeService] = None,
        exchange=None,
        events: Optional[ConnectionEvents] = None,
    ):
        self.profile_store = profile_store
        self.local_store = local_store
        self.probe = probe or SlackProbeService()
        self.exchange = exchange or get_exchange_strategy()
        self.events = events or ConnectionEvents()

    # =========================================================================
    # READ PATH
    # =========================================================================

    async def get_status(self, user_id: str) -> ConnectionRecord:
        remote = await self.profile_store.get_slack_connection(user_id)
        if remote is None:
            remote = ConnectionRecord.disconnected(user_id)
        local = await self._read_local(user_id)

        logger.info(
            f"Reconciling Slack status for user {user_id}: "
            f"remote={'connected' if remote.connected else 'not connected'}, "
            f"local={'connected' if local.connected else 'not connected'}"
        )

        if remote.connected and not local.connected:
            logger.info(f"Repairing local Slack tokens from profile for user {user_id}")
            await self._write_local(user_id, remote)
            return remote

        if local.connected and not remote.connected:
            return await self._promote_local(user_id, remote, local)

        if remote.connected and (local.access_token != remote.access_token or local.team_id != remote.team_id):
            logger.info(f"Local Slack tokens diverge from profile for user {user_id}, rewriting local")
            await self._write_local(user_id, remote)
            return remote

        local_record = ConnectionRecord.from_local(local)
        if local_record.completeness() > remote.completeness():
            return local_record
        return remote

    async def _promote_local(
        self, user_id: str, remote: ConnectionRecord, local: LocalSlackTokens
    ) -> ConnectionRecord:
        """Only the local store claims a connection: verify it before trusting it"""
        if remote.is_revoked(local.access_token):
            logger.info(f"Local Slack token for user {user_id} was disconnected earlier, clearing it")
            await self._clear_local()
            return remote

        try:
            probe = await self.probe.verify_token(local.access_token)
        except ProbeUnavailable as e:
            logger.warning(f"Could not verify local Slack token for user {user_id}, trusting it for now: {e.detail}")
            return ConnectionRecord(
                connected=True,
                owner_user_id=user_id,
                team_id=local.team_id,
                access_token=local.access_token,
            )

        if not probe.valid:
            logger.info(f"Slack rejected local token for user {user_id} ({probe.error}), clearing it")
            await self._clear_local()
            return ConnectionRecord.disconnected(user_id)

        repaired = ConnectionRecord(
            connected=True,
            owner_user_id=user_id,
            team_id=probe.team_id or local.team_id,
            team_name=probe.team_name,
            access_token=local.access_token,
            slack_user_id=probe.slack_user_id,
        )
        logger.info(f"Repairing profile Slack connection from local tokens for user {user_id}")
        try:
            return await self.profile_store.upsert_slack_connection(user_id, repaired)
        except StoreUnavailable as e:
            logger.error(f"Profile repair failed for user {user_id}: {e.detail}")
            return repaired

    # =========================================================================
    # WRITE PATH
    # =========================================================================

    async def set_connection(
        self, user_id: str, token_payload: Union[SlackTokenPayload, Dict[str, Any]]
    ) -> ConnectionRecord:
        """Store a freshly exchanged token: profile first, then the local cache"""
        payload = self._validate_payload(token_payload)

        record = ConnectionRecord(
            connected=True,
            owner_user_id=user_id,
            team_id=payload.team.id,
            team_name=payload.team.name,
            access_token=payload.access_token,
            slack_user_id=payload.authed_user.id if payload.authed_user else None,
            scope=payload.scope,
        )

        stored = await self.profile_store.upsert_slack_connection(user_id, record)
        await self._write_local(user_id, stored)
        logger.info(f"Slack connected for user {user_id}: team {stored.team_id} ({stored.team_name})")

        await self.events.publish(ConnectionEvent(user_id=user_id, connected=True, team_id=stored.team_id))
        return stored

    async def clear_connection(self, user_id: str) -> None:
        """Disconnect on both sides; the local clear never fails the caller"""
        local = await self._read_local(user_id)
        remote_error: Optional[StoreUnavailable] = None
        try:
            await self.profile_store.mark_disconnected(user_id, local.access_token)
        except StoreUnavailable as e:
            logger.error(f"Failed to mark Slack disconnected in profile for user {user_id}: {e.detail}")
            remote_error = e

        await self._clear_local()

        if remote_error is not None:
            raise remote_error

        logger.info(f"Slack disconnected for user {user_id}")
        await self.events.publish(ConnectionEvent(user_id=user_id, connected=False))

    async def complete_oauth(self, code: str, state: Optional[str]) -> ConnectionRecord:
        """Exchange an authorization code and store the resulting connection"""
        if not state:
            raise InvalidRequest("User id (state) is required to complete the Slack connection")
        payload = await self.exchange.exchange(code, state)
        return await self.set_connection(state, payload)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _validate_payload(token_payload) -> SlackTokenPayload:
        if isinstance(token_payload, SlackTokenPayload):
            payload = token_payload
        else:
            try:
                payload = SlackTokenPayload.model_validate(token_payload or {})
            except ValidationError as e:
                raise MissingField(f"Token payload is malformed: {e.error_count()} error(s)", cause=e)

        if not payload.access_token:
            raise MissingField("access_token")
        if payload.team is None or not payload.team.id:
            raise MissingField("team.id")
        return payload

    async def _read_local(self, user_id: str) -> LocalSlackTokens:
        try:
            tokens = await self.local_store.get_slack_tokens()
        except Exception as e:
            logger.warning(f"Local Slack tokens unreadable, treating as absent: {str(e)}")
            return LocalSlackTokens()

        if tokens.user_id and tokens.user_id != user_id:
            logger.info(f"Local Slack tokens belong to another user ({tokens.user_id}), ignoring them")
            return LocalSlackTokens()
        return tokens

    async def _write_local(self, user_id: str, record: ConnectionRecord) -> None:
        tokens = LocalSlackTokens(access_token=record.access_token, team_id=record.team_id, user_id=user_id)
        try:
            await self.local_store.set_slack_tokens(tokens)
        except Exception as e:
            logger.warning(
                f"Failed to write local Slack tokens for user {user_id} "
                f"(token {mask_secret(record.access_token)}): {str(e)}"
            )

    async def _clear_local(self) -> None:
        try:
            await self.local_store.clear_slack_tokens()
        except Exception as e:
            logger.warning(f"Failed to clear local Slack tokens: {str(e)}")
