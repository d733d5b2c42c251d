"""
FastAPI application for the multimodal extraction service.

Provides endpoints for:
- Managing extraction sessions (schema fields, uploaded files)
- Running one aggregated extraction across all files
- Reading results as raw data or table rows
- Listing CRM accounts and sending results to the CRM webhook
"""

import logging

from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Handle both package imports (when running as module) and standalone imports (uvicorn main:app)
try:
    from . import __version__
    from .config import get_settings
    from .models import HealthResponse
    from .routers import crm, extraction, fields, files, sessions, templates
    from .services.ai import get_ai_service
    from .services.file_encoder import FileEncodingError
    from .session import ExtractionInputError, SessionBusyError, SessionNotFoundError
except ImportError:
    import sys
    from pathlib import Path
    # Add parent directory to path for standalone imports
    backend_dir = Path(__file__).parent
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))
    __version__ = "1.0.0"
    from config import get_settings
    from models import HealthResponse
    from routers import crm, extraction, fields, files, sessions, templates
    from services.ai import get_ai_service
    from services.file_encoder import FileEncodingError
    from session import ExtractionInputError, SessionBusyError, SessionNotFoundError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Multimodal Extraction Service...")
    # A missing API key is logged here; extractions fail until it is set
    ai_service = get_ai_service()
    logger.info("Services initialized (model: %s)", ai_service.model)
    yield
    logger.info("Shutting down Multimodal Extraction Service...")


# Create FastAPI application
app = FastAPI(
    title="Multimodal Extraction API",
    description="Aggregated structured data extraction from documents, images and audio",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        message="Multimodal Extraction API is running",
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__, message="Service is healthy")


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(extraction.extract_router)  # Root-level /extract
app.include_router(templates.router)
app.include_router(sessions.router)
app.include_router(fields.router)
app.include_router(files.router)
app.include_router(extraction.router)
app.include_router(crm.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(SessionNotFoundError)
async def not_found_error_handler(request, exc: SessionNotFoundError):
    """Handle unknown sessions, fields, files and templates."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


@app.exception_handler(SessionBusyError)
async def busy_error_handler(request, exc: SessionBusyError):
    """Handle actions started while the same action is in flight."""
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc)},
    )


@app.exception_handler(ExtractionInputError)
async def extraction_input_error_handler(request, exc: ExtractionInputError):
    """Handle extraction input problems (no files, no fields, bad names)."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.exception_handler(FileEncodingError)
async def file_encoding_error_handler(request, exc: FileEncodingError):
    """Handle unreadable or malformed uploads."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
