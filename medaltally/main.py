"""
Medal Tally - FastAPI Application

Provides the admin REST API for recording medal results and the public
scoreboard endpoints.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, config
from .api.dependencies import get_services, reset_services
from .api.routes import router
from .exceptions import ConflictError, MedalTallyError, NotFoundError, ValidationError
from .storage import StorageError, reset_database

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

# Error class -> HTTP status
STATUS_CODES = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StorageError, 503),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    services = get_services()
    settings = services.settings.get_settings()
    logger.info(
        "Scoring: gold=%d silver=%d bronze=%d non-winner=%d",
        settings.gold_points,
        settings.silver_points,
        settings.bronze_points,
        settings.non_winner_points,
    )
    logger.info("App is ready.")

    yield

    logger.info("Shutting down...")
    reset_services()
    reset_database()


# Initialize FastAPI app with lifespan
app = FastAPI(
    title="Medal Tally",
    description="Competition medal results and public scoreboard",
    version=__version__,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MedalTallyError)
async def medal_tally_error_handler(request: Request, exc: MedalTallyError) -> JSONResponse:
    """Translate service and storage errors into the JSON error envelope."""
    status_code = next(
        (code for error_class, code in STATUS_CODES if isinstance(exc, error_class)),
        500
    )
    if status_code >= 500:
        logger.error("Storage failure on %s: %s", request.url.path, exc.message, exc_info=exc)
    else:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters in the same envelope."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    logger.warning("Validation error on %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "details": {"errors": errors},
        },
    )


app.include_router(router)


# Run with: uvicorn medaltally.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
