import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from .routes import router as api_router
from ..config import get_settings
from ..db.models import Base
from ..db.database import engine
from ..errors import InvalidArgument, NotFound, Overlap
from ..logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(get_settings()["log_level"])

    app = FastAPI(
        title="GlassOps Scheduler API",
        description="Technician availability and scheduling engine",
        version="0.1.0",
    )

    # Create database tables if they don't exist
    # In production, use a proper database migration tool like Alembic
    Base.metadata.create_all(bind=engine)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this to specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add exception handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=jsonable_encoder({"detail": exc.errors(), "body": exc.body}),
        )

    @app.exception_handler(InvalidArgument)
    async def invalid_argument_handler(request: Request, exc: InvalidArgument):
        return JSONResponse(
            status_code=400,
            content={"error": exc.message, "field": exc.field},
        )

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(Overlap)
    async def overlap_handler(request: Request, exc: Overlap):
        return JSONResponse(
            status_code=409,
            content=jsonable_encoder({"error": exc.message, "conflicting_entry": exc.conflicting_entry}),
        )

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    logger.info("Scheduler API initialised")
    return app


app = create_app()
