# =============================================================================
# app/core/config.py
# =============================================================================
from typing import List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings
import os
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "Synth Connections API"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Slack connection lifecycle and token synchronization backend for the Synth dashboard"
    API_V1_STR: str = "/api/v1"

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "your-secret-key-here")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

    # Slack OAuth2
    SLACK_CLIENT_ID: Optional[str] = os.getenv("SLACK_CLIENT_ID")
    SLACK_CLIENT_SECRET: Optional[str] = os.getenv("SLACK_CLIENT_SECRET")
    SLACK_REDIRECT_URI: str = os.getenv("SLACK_REDIRECT_URI", "http://localhost:3001/slack/oauth/callback")
    SLACK_SCOPES: str = os.getenv(
        "SLACK_SCOPES",
        "channels:history,channels:read,chat:write,groups:history,groups:read,"
        "im:history,im:read,mpim:history,mpim:read,users:read",
    )
    SLACK_API_BASE_URL: str = os.getenv("SLACK_API_BASE_URL", "https://slack.com/api")

    # "direct" exchanges codes with Slack, "relay" looks them up on the token relay
    SLACK_EXCHANGE_MODE: str = os.getenv("SLACK_EXCHANGE_MODE", "direct")

    # Token relay
    PROXY_PORT: int = int(os.getenv("PROXY_PORT", "3001"))
    RELAY_BASE_URL: str = os.getenv("RELAY_BASE_URL", f"http://localhost:{os.getenv('PROXY_PORT', '3001')}")
    RELAY_TOKEN_TTL_SECONDS: int = int(os.getenv("RELAY_TOKEN_TTL_SECONDS", "300"))
    RELAY_TOKEN_CACHE_SIZE: int = int(os.getenv("RELAY_TOKEN_CACHE_SIZE", "256"))

    # Desktop shell protocol handler
    DESKTOP_URI_SCHEME: str = os.getenv("DESKTOP_URI_SCHEME", "synth")

    # Local token store
    LOCAL_STORE_PATH: str = os.getenv("LOCAL_STORE_PATH", "./data/slack_tokens.json")
    TOKEN_ENCRYPTION_KEY: Optional[str] = os.getenv("TOKEN_ENCRYPTION_KEY")

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./app.db")

    # CORS
    ALLOWED_HOSTS: List[str] = ["*"]  # Configure for production

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"

    # Logging
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")

    @field_validator("SLACK_CLIENT_ID")
    @classmethod
    def validate_slack_client_id(cls, v):
        if not v:
            print("⚠️  WARNING: SLACK_CLIENT_ID is not set")
        return v

    @field_validator("SLACK_CLIENT_SECRET")
    @classmethod
    def validate_slack_client_secret(cls, v):
        if not v:
            print("⚠️  WARNING: SLACK_CLIENT_SECRET is not set")
        return v

    @field_validator("SLACK_EXCHANGE_MODE")
    @classmethod
    def validate_exchange_mode(cls, v):
        if v not in ("direct", "relay"):
            raise ValueError("SLACK_EXCHANGE_MODE must be 'direct' or 'relay'")
        return v

    @field_validator("TOKEN_ENCRYPTION_KEY")
    @classmethod
    def validate_token_encryption_key(cls, v):
        if not v:
            print("⚠️  WARNING: TOKEN_ENCRYPTION_KEY is not set, local Slack tokens will be stored unencrypted")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
