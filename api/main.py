"""
Sales Order API - Main Application.

FastAPI application with CORS enabled for storefront and back-office clients.

Environment variables (read from .env at the project root when present):
- LOG_LEVEL: logging level name (default: INFO)
- CORS_ALLOW_ORIGINS: comma separated list of allowed origins (default: *)
- HOST, PORT: bind address when run with `python -m api.main`
"""

import logging
import os
from http import HTTPStatus
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import __version__
from api.models import ErrorResponse

load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def _allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


# Create FastAPI application
app = FastAPI(
    title="Sales Order API",
    description="REST API for recording, cancelling and updating sales and their items",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Return every HTTP error as an ErrorResponse body."""
    try:
        error = HTTPStatus(exc.status_code).phrase
    except ValueError:
        error = "Error"
    body = ErrorResponse(
        error=error,
        detail=str(exc.detail) if exc.detail is not None else None,
        status_code=exc.status_code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "sales-order-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Sales Order API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import sales

app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
