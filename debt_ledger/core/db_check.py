import asyncio
import logging
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from debt_ledger.core.config import settings
from debt_ledger.db.session import engine

logger = logging.getLogger(__name__)


async def wait_for_db(retries=None, delay=2):
    retries = settings.DB_CONNECT_RETRIES if retries is None else retries

    for i in range(retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connected")
            return
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Database not ready | [ %d/%d ] %s -> retrying...", i + 1, retries, e)
            await asyncio.sleep(delay)

    raise RuntimeError("Database unreachable after retries")
