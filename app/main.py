import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import LOG_LEVEL
from app.database.db import Base, engine
from app.models.events import Event  # noqa: F401
from app.models.requests import ParticipationRequest  # noqa: F401
from app.routes import admin, public
from app.routes import events as event_routes
from app.routes import requests as request_routes
from app.services.errors import ConflictError, ServiceError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Event Service")

# Configure CORS
origins = [
    "*"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render service errors as {status, reason, message, timestamp}."""
    if isinstance(exc, ConflictError):
        logger.warning("Conflict on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": exc.status_code,
            "reason": exc.reason,
            "message": str(exc),
            "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        },
    )


# Create all tables (in production, use migrations such as Alembic)
Base.metadata.create_all(bind=engine)

# Include the routers
app.include_router(admin.router)
app.include_router(event_routes.router)
app.include_router(request_routes.router)
app.include_router(public.router)
