"""
Realty Messaging API - FastAPI Application
Notifications, conversations and live chat for the real-estate marketplace
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from realty_api.api import auth, chatting, messages, notifications, socket, users, webhooks
from realty_api.config import settings
from realty_api.services.notification_expiry import schedule_expiry_job
from realty_api.utils.errors import register_exception_handlers
from realty_api.utils.logging_config import setup_logging

# Configure logging from environment variables (one-time setup)
setup_logging()

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - starts and stops the background scheduler"""
    if schedule_expiry_job(scheduler):
        scheduler.start()
        logger.info("APScheduler started")

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("APScheduler stopped")


app = FastAPI(
    title="Realty Messaging API",
    version=VERSION,
    description="Notifications, buyer/agent/seller conversations and live chat for the real-estate marketplace",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": VERSION,
        "service": "realty-messaging-api",
    }


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router)  # Users endpoints (profile, push token)
app.include_router(notifications.router)  # Notification center
app.include_router(messages.router)  # Conversation resolver and thread reads
app.include_router(chatting.router)  # Message history and REST send
app.include_router(webhooks.router)  # Event producer webhooks (X-API-Key)
app.include_router(socket.router, tags=["websocket"])
