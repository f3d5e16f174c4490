import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from sqlalchemy import text
from alembic.config import Config
from alembic import command
from apiforge.core.config import settings
from apiforge.core.logging import configure_logging
from apiforge.api.errors import register_exception_handlers
from apiforge.api.routes import router as api_router
from apiforge.db.session import engine
from apiforge.store.factory import build_store

configure_logging()
log = logging.getLogger(__name__)


def wait_for_database(max_retries: int = 30, retry_delay: float = 1.0) -> None:
    """Wait for the database to accept connections."""
    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            log.info("Database connection successful", extra={"operation": "startup"})
            return
        except Exception as e:
            if attempt < max_retries - 1:
                log.warning("Database not ready, retrying in %s seconds (attempt %d/%d): %s",
                            retry_delay, attempt + 1, max_retries, e,
                            extra={"operation": "startup"})
                time.sleep(retry_delay)
            else:
                log.error("Database connection failed after %d attempts", max_retries,
                          extra={"operation": "startup"})
                raise


def run_migrations() -> None:
    """Run Alembic migrations to head."""
    try:
        log.info("Running database migrations...", extra={"operation": "startup"})
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        log.info("Database migrations completed successfully", extra={"operation": "startup"})
    except Exception as e:
        log.error("Database migration failed: %s", e, exc_info=True, extra={"operation": "startup"})
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    log.info("Starting API server...", extra={"operation": "startup"})
    try:
        wait_for_database()
        if settings.run_migrations_on_startup:
            run_migrations()
        if getattr(app.state, "store", None) is None:
            app.state.store = build_store()
        log.info("API server startup complete", extra={"operation": "startup"})
    except Exception as e:
        log.error("API startup failed: %s", e, exc_info=True, extra={"operation": "startup"})
        raise
    yield
    log.info("Shutting down API server...", extra={"operation": "shutdown"})


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan
)
app.state.store = None
register_exception_handlers(app)
app.include_router(api_router, prefix="/v1")
