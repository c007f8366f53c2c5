"""
Sales CRM API - Main Application.

FastAPI application with CORS enabled for frontend communication.

Run with: uvicorn api.main:app --reload
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Sales CRM API",
    description="REST API for registering, reviewing and reporting sales",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# TODO: Restrict origins once the frontend domain is fixed
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
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
        "service": "sales-crm-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Sales CRM API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import catalog, clients, dashboard, sales

app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
app.include_router(clients.router, prefix="/api/v1", tags=["Clients"])
app.include_router(dashboard.router, prefix="/api/v1", tags=["Dashboard"])
app.include_router(catalog.router, prefix="/api/v1", tags=["Catalog"])
