"""Crowdsale API — FastAPI entry point; wiring only.

Invariants:
    - Routers and error handlers are registered explicitly, in one place
    - Logging is configured before the database so startup failures are logged
    - Tables exist before the first request (create_schema in lifespan)
    - The live ledger registry starts empty; ledgers load from snapshots on demand

Design Decisions:
    - Lifespan context instead of startup/shutdown events
    - CORS allows only the verbs and the caller header the API actually uses
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crowdsale.api.error_handlers import register_error_handlers
from crowdsale.api.routes import crowdsales, health
from crowdsale.config import get_settings
from crowdsale.infrastructure.database import init_db
from crowdsale.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    await manager.create_schema()
    logger.info(
        f"Crowdsale API ready on {manager.engine.url.drivername}; "
        f"{len(settings.vault_blocked_recipients)} blocked payout recipient(s)",
    )
    try:
        yield
    finally:
        await manager.dispose()
        logger.info("Crowdsale API stopped")


app = FastAPI(title="Crowdsale Ledger API", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "X-Caller-Id"],
)
app.include_router(health.router)
app.include_router(crowdsales.router)
register_error_handlers(app)
