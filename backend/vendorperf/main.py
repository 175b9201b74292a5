"""Vendor Performance Engine - FastAPI Application.

Scorecards, spend-tier classification and performance alerting for the
print ERP procurement module.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vendorperf import __version__
from vendorperf.api import alerts, performance, tiers
from vendorperf.core.config import settings
from vendorperf.core.errors import VendorPerfError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.APP_NAME,
    description="Vendor Performance - scorecards, tiers and alerts",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(VendorPerfError)
async def vendor_perf_error_handler(request: Request, exc: VendorPerfError) -> JSONResponse:
    """Errors raised outside a route's own handling (store unavailable, etc.)."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Include routers
app.include_router(performance.router)  # Scorecards, configs, ESG
app.include_router(tiers.router)  # Spend tiers
app.include_router(alerts.router)  # Alert workflow


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": settings.APP_NAME,
        "version": __version__,
        "status": "operational",
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}
