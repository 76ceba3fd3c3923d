"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from eventpass.config import settings
from eventpass.database import Base, engine
from eventpass.deps import get_codec
from eventpass.logging_config import setup_logging

# Import routers
from eventpass.routers import users, events, registrations, scans

# Import all models so Base.metadata knows about them
from eventpass.models.user import User                  # noqa: F401
from eventpass.models.event import Event                # noqa: F401
from eventpass.models.registration import Registration  # noqa: F401
from eventpass.models.scan_log import ScanLog           # noqa: F401

setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="EventPass",
    description="College event registration with signed, single-use QR attendance credentials",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(registrations.router, prefix="/api/registrations", tags=["Registrations"])
app.include_router(scans.router, prefix="/api", tags=["Scans"])


@app.on_event("startup")
def on_startup():
    """Load the signing key once and create tables in SQLite dev mode."""
    get_codec()
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    logger.info("EventPass started")


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
