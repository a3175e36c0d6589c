"""
main.py
-------
Entry point for the BillTracker API.

Responsibilities:
    - Initialize the database connection pool and schema.
    - Build the services around one shared cache and mount the routers.
    - Start and stop the notification scheduler with the app.
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import API_HOST, API_PORT, SCHEDULER_ENABLED
from db.connection import close_pool, dialect, init_pool
from db.init_db import create_tables
from handlers import bills_handler, categories_handler, income_handler, recurring_handler, settings_handler
from handlers.dependencies import build_services
from handlers.errors import register_error_handlers
from security.rate_limiter import RateLimiter
from services.cache_service import CacheService
from services.notification_dispatcher import NotificationDispatcher
from utils.logger import get_logger

logger = get_logger(__name__)


def create_app(
    database_url: Optional[str] = None,
    cache: Optional[CacheService] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    rate_limiter: Optional[RateLimiter] = None,
    start_scheduler: bool = SCHEDULER_ENABLED,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database_url: Overrides ``config.DATABASE_URL``.
        cache: Shared cache; a fresh one when None.
        dispatcher: Notification dispatcher; the default provider registry when None.
        rate_limiter: Per-owner limiter; configured from .env when None.
        start_scheduler: Run the cron jobs while the app is up.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ── 1. Database setup ─────────────────────────────
        logger.info("Initializing database...")
        init_pool(database_url=database_url)
        create_tables()

        # ── 2. Scheduler ──────────────────────────────────
        scheduler = app.state.services.scheduler
        if start_scheduler:
            scheduler.start()
        logger.info("🚀 BillTracker API is running!")
        try:
            yield
        finally:
            # ── 3. Cleanup on shutdown ────────────────────
            scheduler.stop()
            close_pool()
            logger.info("BillTracker API stopped.")

    app = FastAPI(title="BillTracker API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.services = build_services(cache or CacheService(), dispatcher)
    app.state.rate_limiter = rate_limiter or RateLimiter()

    register_error_handlers(app)
    app.include_router(bills_handler.router)
    app.include_router(income_handler.router)
    app.include_router(recurring_handler.router)
    app.include_router(categories_handler.router)
    app.include_router(settings_handler.router)

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "database": dialect(),
            "scheduler": app.state.services.scheduler.running,
        }

    return app


def main() -> None:
    """Run the API with uvicorn."""
    uvicorn.run(create_app(), host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
