"""randavatar application entry point: Slack Bolt + FastAPI.

Architecture:
- FastAPI for health checks, metrics and the interactivity endpoint
- Slack Bolt for Events API requests (app_home_opened)
- APScheduler firing the avatar updater, started in the app lifespan
- Async SQLAlchemy for the user store
"""

from __future__ import annotations

import logging
import ssl
from contextlib import asynccontextmanager

import certifi
import structlog
from fastapi import FastAPI, Request, Response
from slack_bolt.adapter.fastapi.async_handler import AsyncSlackRequestHandler
from slack_bolt.async_app import AsyncApp
from slack_sdk.signature import SignatureVerifier
from slack_sdk.web.async_client import AsyncWebClient

from randavatar.config import settings
from randavatar.crons.scheduler import get_scheduler
from randavatar.db.session import close_db
from randavatar.db.store import get_store
from randavatar.observability import get_metrics
from randavatar.slack.handlers import register_handlers
from randavatar.slack.interactivity import InteractionOutcome, handle_interaction

logger = structlog.get_logger()

# Configure structlog
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
        if settings.env == "production"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level.upper())
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
)

bot_token, signing_secret = settings.require("slack_bot_token", "slack_signing_secret")


# ═══════════════════════════════════════════════════════════════════════════════
# SLACK BOLT APP
# ═══════════════════════════════════════════════════════════════════════════════

_ssl_ctx = ssl.create_default_context(cafile=certifi.where())

bolt = AsyncApp(
    token=bot_token,
    signing_secret=signing_secret,
    process_before_response=True,
    client=AsyncWebClient(token=bot_token, ssl=_ssl_ctx),
)

register_handlers(bolt, get_store())

_verifier = SignatureVerifier(signing_secret)


# ═══════════════════════════════════════════════════════════════════════════════
# FASTAPI APP
# ═══════════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("app_starting", env=settings.env)
    scheduler = get_scheduler()
    await scheduler.start()

    yield

    logger.info("app_shutting_down")
    await scheduler.stop()
    await close_db()


api = FastAPI(
    title="Randomize Avatar",
    version="0.1.0",
    description="Rotates Slack profile photos on a per-user cadence",
    lifespan=lifespan,
)

handler = AsyncSlackRequestHandler(bolt)


@api.get("/health")
async def health() -> dict[str, str | None]:
    """Health check endpoint."""
    next_run = get_scheduler().next_run_time()
    return {
        "status": "ok",
        "service": "randavatar",
        "next_tick": next_run.isoformat() if next_run else None,
    }


@api.get("/metrics")
async def metrics_endpoint() -> dict:
    """Tick and interaction counters plus tick latency."""
    return get_metrics().snapshot()


@api.post("/slack/events")
async def slack_events(req: Request) -> Response:
    """Slack Events API endpoint."""
    return await handler.handle(req)


@api.post("/slack/interactive")
async def slack_interactive(req: Request) -> Response:
    """Block Kit interactions. 200 acknowledges, 500 rejects."""
    body = await req.body()
    if not _verifier.is_valid_request(body, dict(req.headers)):
        get_metrics().increment("interactions_total", "unauthorized")
        return Response(status_code=401)

    outcome = await handle_interaction(body, get_store())
    get_metrics().increment("interactions_total", outcome.value)
    if outcome is InteractionOutcome.ACCEPTED:
        return Response(status_code=200)
    return Response(status_code=500)
