"""
Create any missing tables for the hostel schema.

Run once against a fresh database (idempotent):
  python -m app.db.schema_check
"""
import asyncio
import logging
from typing import List

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

import app.core.models  # noqa: F401  registers every model on Base.metadata
from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import Base, engine

logger = logging.getLogger(__name__)


async def ensure_tables(db_engine: AsyncEngine) -> List[str]:
    """Create tables that do not exist yet; returns the names created."""
    async with db_engine.begin() as conn:
        existing = set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))
        missing = [t.name for t in Base.metadata.sorted_tables if t.name not in existing]
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    if missing:
        logger.info("Created missing tables: %s", ", ".join(missing))
    else:
        logger.info("All hostel tables already exist in the database.")
    return missing


async def main() -> None:
    configure_logging(settings.log_level)
    await ensure_tables(engine)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
