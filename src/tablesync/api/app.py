"""FastAPI application for tablesync."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tablesync import __version__
from tablesync.api.routers import tables

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting tablesync API v{__version__}")
    yield
    logger.info("Shutting down tablesync API")


app = FastAPI(
    title="tablesync API",
    description="Server-side table state with incremental view deltas",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tables.router, prefix="/api/v1/tables", tags=["tables"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"name": "tablesync API", "version": __version__, "status": "running"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
