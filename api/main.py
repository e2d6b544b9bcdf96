#!/usr/bin/env python3
"""
Tariff Code Extraction API.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from core.config import settings
from core.logging import configure_logging
from api.middleware.logging import LoggingMiddleware
from api.routers import extraction, health

configure_logging(settings)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    description="Extracts normalized, deduplicated tariff code tables from scanned tariff documents"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.allowed_methods,
    allow_headers=settings.allowed_headers,
)
app.add_middleware(LoggingMiddleware)

# Expose health checks both at root and versioned paths
app.include_router(health.router, prefix=settings.api_v1_prefix)
app.include_router(extraction.router, prefix=settings.api_v1_prefix)
logger.info(f"Health and extraction routers included under {settings.api_v1_prefix}")

if not settings.oracle_configured:
    logger.warning("Oracle not configured: extraction endpoints will return empty results")


@app.get("/healthz")
async def root_health_check():
    """Root-level health endpoint for external monitors."""
    return await health.health_check()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
