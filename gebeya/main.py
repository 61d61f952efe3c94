# gebeya/main.py

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gebeya import models  # noqa: F401  registers tables on Base.metadata
from gebeya.core.config import get_settings
from gebeya.core.logging_config import configure_logging
from gebeya.database import Base, engine
from gebeya.routes import checkout, health, orders

logger = logging.getLogger(__name__)


async def run_migrations() -> bool:
    """Run ``alembic upgrade head`` in a subprocess; env.py needs its own event loop."""
    process = await asyncio.create_subprocess_exec(
        "alembic", "upgrade", "head",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode == 0:
        logger.info(f"Migrations completed successfully\n{stdout.decode()}")
        return True
    logger.error(f"Migration failed: {stderr.decode()}")
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    settings = get_settings()

    if settings.RUN_MIGRATIONS:
        logger.info("Running database migrations...")
        await run_migrations()
    elif settings.ENVIRONMENT == "development":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured (development)")

    try:
        yield
    finally:
        await engine.dispose()


app = FastAPI(
    title="Gebeya Checkout",
    lifespan=lifespan
)

app.include_router(health.router)
app.include_router(checkout.router)
app.include_router(orders.router)
