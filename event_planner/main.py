"""Event Planner Web Application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from event_planner.core.config import settings
from event_planner.core.database import create_db_and_tables
from event_planner.core.scheduler import shutdown_scheduler, start_scheduler
from event_planner.core.timeutil import utc_now
from event_planner.planning.errors import PlannerError, ValidationError
from event_planner.routes import admin, events, signups

# Configure logging
settings.log_dir.mkdir(parents=True, exist_ok=True)
log_file = settings.log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    # Startup
    logger.info("Starting Event Planner application")
    create_db_and_tables()
    if settings.sweeper_enabled:
        start_scheduler()
    yield
    # Shutdown
    shutdown_scheduler()
    logger.info("Event Planner application shut down")


app = FastAPI(
    title=settings.app_name,
    description="Coordinate community events: creation, capacity-bounded signup, cancellation and email notices",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(events.router)
app.include_router(signups.router)
app.include_router(admin.router)


@app.exception_handler(PlannerError)
async def planner_exception_handler(request: Request, exc: PlannerError) -> JSONResponse:
    """Translate lifecycle and admission rejections into their HTTP status."""
    logger.warning(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
    content = {"error": exc.code, "message": exc.message}
    if isinstance(exc, ValidationError):
        content["fields"] = exc.fields
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies the same way as other validation errors."""
    fields = [".".join(str(part) for part in error["loc"] if part != "body") for error in exc.errors()]
    logger.warning(f"{request.method} {request.url.path} invalid request: {fields}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": ValidationError.code,
            "message": "Request validation failed",
            "fields": fields,
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store failures fail the operation; nothing was committed."""
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "message": "An error occurred while accessing the database. Please try again later.",
        },
    )


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name, "timestamp": utc_now().isoformat()}
