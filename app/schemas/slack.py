# =============================================================================
# app/schemas/slack.py
# =============================================================================
import hashlib
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

def token_fingerprint(access_token: str) -> str:
    return hashlib.sha256(access_token.encode("utf-8")).hexdigest()

class SlackTeam(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None

class SlackAuthedUser(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    scope: Optional[str] = None

class SlackTokenPayload(BaseModel):
    """oauth.v2.access response, as returned by Slack or by the token relay"""
    model_config = ConfigDict(extra="allow")

    ok: Optional[bool] = None
    access_token: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    team: Optional[SlackTeam] = None
    authed_user: Optional[SlackAuthedUser] = None

class LocalSlackTokens(BaseModel):
    """Device-scoped record kept by the local token store"""
    model_config = ConfigDict(populate_by_name=True)

    access_token: Optional[str] = Field(default=None, alias="accessToken")
    team_id: Optional[str] = Field(default=None, alias="teamId")
    user_id: Optional[str] = Field(default=None, alias="userId")

    @property
    def connected(self) -> bool:
        return bool(self.access_token and self.team_id)

class ConnectionRecord(BaseModel):
    connected: bool = False
    owner_user_id: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    access_token: Optional[str] = None
    slack_user_id: Optional[str] = None
    scope: Optional[str] = None
    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None
    revoked_token_fingerprints: List[str] = Field(default_factory=list, exclude=True)

    def completeness(self) -> int:
        """Number of populated metadata fields"""
        return sum(1 for value in self.model_dump(exclude={"connected"}).values() if value)

    @classmethod
    def disconnected(cls, owner_user_id: str) -> "ConnectionRecord":
        return cls(connected=False, owner_user_id=owner_user_id)

    @classmethod
    def from_local(cls, tokens: LocalSlackTokens) -> "ConnectionRecord":
        # A partial local record (token without team) is not a connection
        return cls(
            connected=tokens.connected,
            owner_user_id=tokens.user_id,
            team_id=tokens.team_id,
            access_token=tokens.access_token if tokens.connected else None,
        )

    def is_revoked(self, access_token: Optional[str]) -> bool:
        """True when ``access_token`` was cleared by an earlier disconnect"""
        if not access_token or not self.revoked_token_fingerprints:
            return False
        return token_fingerprint(access_token) in self.revoked_token_fingerprints

class ProbeResult(BaseModel):
    valid: bool
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    slack_user_id: Optional[str] = None
    error: Optional[str] = None

class ConnectionEvent(BaseModel):
    user_id: str
    connected: bool
    team_id: Optional[str] = None

class SlackConnectionResponse(BaseModel):
    connected: bool
    user_id: str
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    slack_user_id: Optional[str] = None
    scope: Optional[str] = None
    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, user_id: str, record: ConnectionRecord) -> "SlackConnectionResponse":
        return cls(user_id=user_id, **record.model_dump(exclude={"access_token", "owner_user_id"}))

class SlackOAuthCompleteRequest(BaseModel):
    code: str
    state: Optional[str] = None

class RelayOAuthRequest(BaseModel):
    code: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")

    model_config = ConfigDict(populate_by_name=True)
