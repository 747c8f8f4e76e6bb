import asyncio

import asyncpg
from alembic import command
from alembic.config import Config

from app.core.config import settings
from app.core.logging_config import logger

DB_RETRIES = 5


async def wait_for_db(retries: int = DB_RETRIES) -> None:
    db_url = settings.DATABASE_URL.replace("postgresql+asyncpg://", "postgresql://")
    for attempt in range(1, retries + 1):
        try:
            conn = await asyncpg.connect(db_url)
            await conn.close()
            logger.info("Database is ready!")
            return
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(f"Waiting for database... Attempt {attempt}/{retries}: {e}")
            await asyncio.sleep(2)
    raise RuntimeError("Database connection failed")


def apply_migrations():
    asyncio.run(wait_for_db())
    logger.info("Starting migrations...")
    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    command.upgrade(alembic_cfg, "head")
    logger.info("Migrations applied!")


if __name__ == "__main__":
    apply_migrations()
