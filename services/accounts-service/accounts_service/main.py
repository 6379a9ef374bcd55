"""FastAPI application wiring for the accounts service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import router as v1_router
from .background import BackgroundRunner
from .config import get_settings
from .domain.service import AccountService
from .mail.mailer import Mailer
from .repository import AccountRepository

settings = get_settings()

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Install a single stream handler on the root logger."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, background runner, services) for the app lifecycle."""
    pool = ConnectionPool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        timeout=settings.db_timeout_seconds,
        open=False,
    )
    pool.open()
    runner = BackgroundRunner(max_workers=settings.background_max_workers)
    app.state.pool = pool
    app.state.runner = runner
    app.state.account_service = AccountService(
        AccountRepository(pool, timeout_seconds=settings.db_timeout_seconds),
        runner,
        Mailer(settings),
        password_cost=settings.bcrypt_cost,
    )
    try:
        yield
    finally:
        undrained = runner.shutdown(timeout=settings.shutdown_timeout_seconds)
        if undrained:
            logger.warning("exiting with %d background unit(s) not drained", len(undrained))
        pool.close()


configure_logging(settings.log_level)

app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


app.include_router(v1_router)


@app.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
