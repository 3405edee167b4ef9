"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pbagent.agents import disconnect_all_clients
from pbagent.config import settings
from pbagent.redis_client import connect_redis, disconnect_redis
from pbagent.routes import chat, health

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: connect Redis. Shutdown: disconnect agent sessions + Redis."""
    if not settings.productboard_configured:
        logger.warning("PRODUCTBOARD_TOKEN is not set; Productboard tools will fail")
    await connect_redis()
    yield
    await disconnect_all_clients()
    await disconnect_redis()


app = FastAPI(
    title="Productboard Agent",
    description="Productboard assistant — Backend API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(chat.router)

if settings.slack_configured:
    from pbagent.routes import slack

    app.include_router(slack.router)
