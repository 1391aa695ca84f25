import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from event_registry.core import config
from event_registry.core.exceptions import ServiceError
from event_registry.core.logging_config import setup_logging
from event_registry.database.db import Base, engine

# Import models so that they register with Base.metadata
from event_registry.models import events, registrations, users  # noqa: F401
from event_registry.routes import auth
from event_registry.routes import events as event_routes
from event_registry.routes import registrations as registration_routes
from event_registry.routes import users as user_routes
from event_registry.schemas.errors import ErrorOut

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # Create all tables (in production, use migrations such as Alembic)
    Base.metadata.create_all(bind=engine)
    logger.info("Event registry started (environment=%s)", config.ENVIRONMENT)
    yield
    logger.info("Event registry stopped")


app = FastAPI(title="Event Registry", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, detail: str, error_code: str, **extra) -> JSONResponse:
    body = ErrorOut(
        timestamp=datetime.now(timezone.utc), detail=detail, error_code=error_code, **extra
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
        headers=headers,
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return _error_response(exc.status_code, exc.message, exc.error_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        # Skip the location prefix ("body", "query", "path")
        field = ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0])
        errors[field] = error["msg"]
    return _error_response(400, "Validation error", "VALIDATION_ERROR", validation_errors=errors)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(500, "An unexpected error occurred", "INTERNAL_SERVER_ERROR")


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


# Include the routers
app.include_router(auth.router)
app.include_router(user_routes.router)
app.include_router(event_routes.router)
app.include_router(registration_routes.router)
