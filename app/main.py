from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from fastapi.staticfiles import StaticFiles

from app.config import get_settings
from app.database import engine, Base
from app.errors import TryOnError
from app.logging_conf import setup_logging
from app.routers import outfits, tryon, uploads
from app.routers.tryon import CORS_HEADERS
from app.services.storage import storage
from app.services.tryon import tryon_service

settings = get_settings()
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    # Create database tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Ensure local storage directories exist
    await storage.ensure_storage_exists()
    logger.info(f"{settings.app_name} started")

    yield

    # Shutdown
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="""
    ## Virtual Try-On API

    This API allows you to:

    1. **Upload photos** of yourself and of a garment
    2. **Generate a try-on image** showing you wearing the garment
    3. **Browse your outfits**, newest first

    ### How it works:

    1. **Upload**: Person and garment photos are stored under your user id and
       get stable public URLs.

    2. **Process**: Send both URLs to `/process-images`. The try-on provider
       composes the image, we keep our own copy of the result, and the outfit
       is recorded once per (you, person photo, garment photo).
    """,
    version="1.0.0",
    lifespan=lifespan,
)


class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that answers accepted pre-flights with 204 and no body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


# CORS middleware
app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    max_age=86400,
)

# Mount static files for serving stored images
storage_path = Path(settings.storage_path)
storage_path.mkdir(parents=True, exist_ok=True)
app.mount("/files", StaticFiles(directory=str(storage_path)), name="files")


@app.exception_handler(TryOnError)
async def tryon_exception_handler(request: Request, exc: TryOnError):
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(),
        headers=CORS_HEADERS,
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "details": str(exc) if settings.debug else None,
        },
        headers=CORS_HEADERS,
    )


# Include routers
app.include_router(uploads.router, prefix="/api/v1")
app.include_router(tryon.router, prefix="/api/v1")
app.include_router(outfits.router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "ledger_write_failures": tryon_service.ledger_write_failures,
    }


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "upload_images": "POST /api/v1/uploads",
            "process_images": "POST /api/v1/process-images",
            "list_outfits": "GET /api/v1/outfits",
        }
    }
