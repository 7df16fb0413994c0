# =============================================================================
# app/stores/profile_store.py
# =============================================================================
from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.exceptions import StoreUnavailable
from app.core.logger import get_module_logger
from app.db.session import SessionLocal
from app.models.slack_connection import SlackConnection
from app.models.user import User
from app.schemas.slack import ConnectionRecord, token_fingerprint

logger = get_module_logger(__name__, "profile_store.log")


class ProfileStore:
    """Remote per-user profile document, ``connections.slack`` sub-record"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    async def get_slack_connection(self, user_id: str) -> Optional[ConnectionRecord]:
        """Return the user's Slack record, or None when the profile has none"""
        db = self.session_factory()
        try:
            connection = self._query(db, user_id)
            if connection is None:
                return None
            return self._to_record(connection)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read Slack connection for user {user_id}: {str(e)}")
            raise StoreUnavailable(f"Profile store read failed: {str(e)}", cause=e)
        finally:
            db.close()

    async def upsert_slack_connection(self, user_id: str, record: ConnectionRecord) -> ConnectionRecord:
        """Write a connected record; repeating an identical write changes nothing"""
        db = self.session_factory()
        try:
            if db.get(User, user_id) is None:
                db.add(User(id=user_id))
                db.flush()

            connection = self._query(db, user_id)
            if connection is None:
                connection = SlackConnection(user_id=user_id)
                db.add(connection)

            same_link = (
                connection.connected
                and connection.access_token == record.access_token
                and connection.slack_team_id == record.team_id
            )

            connection.connected = True
            connection.access_token = record.access_token
            connection.slack_team_id = record.team_id
            connection.team_name = record.team_name or (connection.team_name if same_link else None)
            connection.slack_user_id = record.slack_user_id or (connection.slack_user_id if same_link else None)
            connection.scope = record.scope or (connection.scope if same_link else None)
            if not same_link:
                connection.connected_at = record.connected_at or datetime.utcnow()
            connection.disconnected_at = None
            connection.revoked_token_fingerprints = None

            db.commit()
            db.refresh(connection)
            logger.info(f"Upserted Slack connection for user {user_id} (team {record.team_id})")
            return self._to_record(connection)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to upsert Slack connection for user {user_id}: {str(e)}")
            raise StoreUnavailable(f"Profile store write failed: {str(e)}", cause=e)
        finally:
            db.close()

    async def mark_disconnected(self, user_id: str, local_access_token: Optional[str] = None) -> bool:
        """
        Set connected=False and drop the token, creating the record if needed.

        Fingerprints of the stored token and of ``local_access_token`` are kept
        so a device copy that outlives the disconnect is recognised as stale.
        Returns True when a record already existed.
        """
        db = self.session_factory()
        try:
            connection = self._query(db, user_id)
            existed = connection is not None
            if connection is None:
                if db.get(User, user_id) is None:
                    db.add(User(id=user_id))
                    db.flush()
                connection = SlackConnection(user_id=user_id, connected=False)
                db.add(connection)

            revoked = {
                token_fingerprint(token)
                for token in (connection.access_token, local_access_token)
                if token
            }
            if revoked:
                connection.revoked_token_fingerprints = ",".join(sorted(revoked))
            if connection.connected or connection.disconnected_at is None:
                connection.disconnected_at = datetime.utcnow()
            connection.connected = False
            connection.access_token = None
            db.commit()
            logger.info(f"Marked Slack connection disconnected for user {user_id} ({len(revoked)} token(s) revoked)")
            return existed
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to disconnect Slack for user {user_id}: {str(e)}")
            raise StoreUnavailable(f"Profile store write failed: {str(e)}", cause=e)
        finally:
            db.close()

    @staticmethod
    def _query(db: Session, user_id: str) -> Optional[SlackConnection]:
        return db.query(SlackConnection).filter(SlackConnection.user_id == user_id).first()

    @staticmethod
    def _to_record(connection: SlackConnection) -> ConnectionRecord:
        return ConnectionRecord(
            connected=bool(connection.connected and connection.access_token and connection.slack_team_id),
            owner_user_id=connection.user_id,
            team_id=connection.slack_team_id,
            team_name=connection.team_name,
            access_token=connection.access_token if connection.connected else None,
            slack_user_id=connection.slack_user_id,
            scope=connection.scope,
            connected_at=connection.connected_at,
            disconnected_at=connection.disconnected_at,
            revoked_token_fingerprints=(connection.revoked_token_fingerprints or "").split(",") if connection.revoked_token_fingerprints else [],
        )
