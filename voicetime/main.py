"""
VoiceTime API - Main Application
Session, delay and reminder tracking for the voice agent.
"""

from dotenv import load_dotenv
load_dotenv()  # Load .env file into environment variables

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from voicetime.api.session_routes import get_registry, router as session_router, shutdown_registry
from voicetime.integration.task_scheduler import shutdown_task_scheduler

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="VoiceTime API",
    description="Temporal session state for a conversational voice agent",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)

@app.on_event("startup")
def _startup():
    """Build the registry (and its scheduler threads) before the first request."""
    registry = get_registry()
    logger.info(
        "Session registry ready (timezone=%s, scheduler workers=%d)",
        registry.time_provider.tzinfo, settings.scheduler_workers,
    )

@app.on_event("shutdown")
def _shutdown():
    """Revoke pending reminders and stop scheduler threads."""
    shutdown_registry()
    shutdown_task_scheduler(wait=False)
    logger.info("Shut down cleanly")

app.include_router(session_router, prefix="")

@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "version": "1.0.0"}
