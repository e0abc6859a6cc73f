"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api import sync, webhooks
from integrations.yodlee_client import close_yodlee_client
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the shared Yodlee client on shutdown."""
    yield
    close_yodlee_client()
    logger.debug("Yodlee client closed")


app = FastAPI(
    title="Ledger Sync",
    description="Aggregator account and transaction sync for the household ledger",
    version="0.1.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(sync.router)
app.include_router(webhooks.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
