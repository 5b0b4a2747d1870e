"""Blockcharge FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from blockcharge.api.routes import demands, finances
from blockcharge.config import settings
from blockcharge.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    init_db()
    logger.info("Database tables initialized")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=settings.api_title,
    description="Service charge demands, payments and penalties for residential buildings",
    version=settings.api_version,
    lifespan=lifespan,
)


# Include routers
app.include_router(demands.router)
app.include_router(finances.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    from dotenv import load_dotenv

    from blockcharge.logging import setup_server_logging

    load_dotenv()
    setup_server_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
