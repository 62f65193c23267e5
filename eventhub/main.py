"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventhub.config import settings
from eventhub.database import Base, engine
from eventhub.errors import EventHubError
from eventhub.realtime.broadcaster import broadcaster

# Import routers
from eventhub.routers import auth, events, realtime

# Import all models so Base.metadata knows about them
from eventhub.models.user import User               # noqa: F401
from eventhub.models.event import Event             # noqa: F401
from eventhub.models.attendee import EventAttendee  # noqa: F401

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables in SQLite dev mode and run the broadcast dispatcher."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    await broadcaster.start()
    yield
    await broadcaster.stop()
    logger.info("Application shutdown")


app = FastAPI(
    title="EventHub",
    description="Event listing with single-event attendance and realtime attendee updates",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EventHubError)
async def eventhub_error_handler(request: Request, exc: EventHubError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err["loc"] if part != "body") for err in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "fields": fields},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or "Internal server error"},
    )


# Register routers
app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(realtime.router, prefix="/ws", tags=["Realtime"])


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
