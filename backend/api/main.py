"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import forecast, outfits, resolve
from domain.errors import ValidationError
from settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# Create app
app = FastAPI(
    title="Weather Wardrobe API",
    description="Resolve colloquial place phrases and turn forecasts into outfit advice",
    version="0.1.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(resolve.router, tags=["resolve"])
app.include_router(forecast.router, tags=["forecast"])
app.include_router(outfits.router, tags=["outfits"])


def _summarize_validation_errors(exc: RequestValidationError) -> List[str]:
    """``body.field: message`` lines; input values and source locations are left out."""
    lines = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        lines.append(f"{loc}: {msg}" if loc else msg)
    return lines


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors: 400 with a field summary."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": _summarize_validation_errors(exc)},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Every error body uses the ``{"error": ...}`` shape, route-raised or not."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(ValidationError)
async def domain_validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal error"})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Weather Wardrobe API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
