# =============================================================================
# app/main.py
# =============================================================================
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
from app.core.config import settings
from app.api.v1.api import api_router
from app.api import relay
from app.db.init_db import init_db
from app.schemas.slack import ConnectionEvent
from app.services.connection_events import ConnectionEvents
from app.services.connection_reconciler import ConnectionReconciler
from app.services.slack_oauth_service import DirectExchange, get_exchange_strategy
from app.services.slack_probe_service import SlackProbeService
from app.services.token_relay_service import TokenRelayService
from app.stores.local_token_store import LocalTokenStore
from app.stores.profile_store import ProfileStore
from app.core.logger import get_module_logger

logger = get_module_logger(__name__, "main.log")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage FastAPI application lifespan with proper startup/shutdown
    """
    logger.info("🚀 Starting FastAPI application...")

    try:
        logger.info("📦 Initializing database...")
        init_db()
        logger.info("✅ Database initialized successfully")

        logger.info("🔧 Application configuration:")
        logger.info(f"   Environment: {settings.ENVIRONMENT}")
        logger.info(f"   Project: {settings.PROJECT_NAME} v{settings.VERSION}")
        logger.info(f"   Database: {settings.DATABASE_URL[:50]}...")
        logger.info(f"   Slack OAuth: {'✅ Configured' if settings.SLACK_CLIENT_ID else '❌ Not configured'}")
        logger.info(f"   Exchange mode: {settings.SLACK_EXCHANGE_MODE}")
        logger.info(f"   Local token store encrypted: {app.state.reconciler.local_store.encrypted}")

    except Exception as e:
        logger.error(f"❌ Error during startup: {str(e)}")
        raise

    yield

    await app.state.reconciler.events.drain()
    logger.info("👋 Application shutdown completed")

def _log_connection_event(event: ConnectionEvent) -> None:
    logger.info(
        f"Slack connection {'established' if event.connected else 'removed'} "
        f"for user {event.user_id} (team {event.team_id})"
    )

def create_application(reconciler: ConnectionReconciler = None) -> FastAPI:
    """
    Create and configure the FastAPI application with all middleware and routes
    """
    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.debug = settings.DEBUG

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Connection services shared by every request
    if reconciler is None:
        reconciler = ConnectionReconciler(
            profile_store=ProfileStore(),
            local_store=LocalTokenStore(),
            probe=SlackProbeService(),
            exchange=get_exchange_strategy(),
            events=ConnectionEvents(),
        )
    reconciler.events.subscribe(_log_connection_event)
    application.state.reconciler = reconciler
    application.state.token_relay = TokenRelayService()
    application.state.direct_exchange = DirectExchange()

    application.include_router(api_router, prefix=settings.API_V1_STR)
    application.include_router(relay.router, tags=["Slack Relay"])

    logger.info("📋 Registered API routes:")
    logger.info("   💬 /api/v1/slack/* - Slack connection lifecycle")
    logger.info("   👤 /api/v1/users/* - User profile")
    logger.info("   🔁 /slack/oauth/callback, /api/slack/* - OAuth redirect and token relay")

    return application

app = create_application()

@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/docs",
    }

@app.get("/health")
async def health_check():
    """Health check with database status"""
    from sqlalchemy import text
    from app.db.session import SessionLocal
    db_healthy = True
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        db_healthy = False

    return {
        "status": "healthy" if db_healthy else "degraded",
        "version": settings.VERSION,
        "timestamp": datetime.utcnow().isoformat(),
        "components": {
            "database": "healthy" if db_healthy else "unhealthy",
            "api": "healthy"
        },
        "configuration": {
            "slack_oauth": bool(settings.SLACK_CLIENT_ID),
            "exchange_mode": settings.SLACK_EXCHANGE_MODE,
            "debug_mode": settings.DEBUG
        }
    }
