"""FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .domain_errors import DomainError
from .problem_details import domain_error_handler, validation_error_handler
from .routers import machines, production_flows

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create app
app = FastAPI(
    title="Carpet ERP Production Flow",
    version="1.0.0",
    description="Backend API for carpet production flows and machine catalog",
)

# Production safety checks (explicit frontend origins required).
if settings.ENV.lower() == "production" and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.ENV.lower() == "production" and any(origin == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard).")

# CORS
cors_methods = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
cors_headers = ["Content-Type", "X-User-Name"]
if settings.ENV.lower() != "production":
    cors_headers = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=cors_methods,
    allow_headers=cors_headers,
)

app.add_exception_handler(DomainError, domain_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

# Include routers
app.include_router(machines.router, prefix="/api/v1")
app.include_router(production_flows.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "env": settings.ENV,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Carpet ERP Production Flow API",
        "version": "1.0.0",
        "docs": "/docs",
    }
