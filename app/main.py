import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1 import routes
from app.core.config import settings
from app.core.logging_config import logger
from app.db.database import AsyncSessionLocal
from app.services.tender_service import close_expired_tenders, send_deadline_reminders


async def expiry_sweep_loop(interval: int) -> None:
    """Периодически закрывает открытые тендеры с истёкшим сроком."""
    while True:
        await asyncio.sleep(interval)
        try:
            async with AsyncSessionLocal() as db:
                result = await close_expired_tenders(db)
            if result.closed or result.errors:
                logger.info(f"Background expiry sweep: closed {result.closed}, errors {len(result.errors)}")
        except SQLAlchemyError as e:
            logger.error(f"Background expiry sweep failed: {str(e)}")


async def deadline_reminder_loop(interval: int) -> None:
    """Периодически напоминает о приближающемся сроке подачи."""
    while True:
        await asyncio.sleep(interval)
        try:
            async with AsyncSessionLocal() as db:
                result = await send_deadline_reminders(db)
            if result.reminders or result.errors:
                logger.info(f"Background reminders: sent {len(result.reminders)}, errors {len(result.errors)}")
        except SQLAlchemyError as e:
            logger.error(f"Background deadline reminders failed: {str(e)}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    tasks = []
    if settings.EXPIRY_SWEEP_INTERVAL_SECONDS > 0:
        logger.info(f"Starting expiry sweep every {settings.EXPIRY_SWEEP_INTERVAL_SECONDS}s")
        tasks.append(asyncio.create_task(expiry_sweep_loop(settings.EXPIRY_SWEEP_INTERVAL_SECONDS)))
    if settings.DEADLINE_REMINDER_INTERVAL_SECONDS > 0:
        logger.info(f"Starting deadline reminders every {settings.DEADLINE_REMINDER_INTERVAL_SECONDS}s")
        tasks.append(asyncio.create_task(deadline_reminder_loop(settings.DEADLINE_REMINDER_INTERVAL_SECONDS)))
    yield
    for task in tasks:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Anbud", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Actor-Id", "X-Actor-Name", "X-Actor-Email",
                   "X-Actor-Role", "X-Company-Id", "X-Company-Name"],
)

app.include_router(routes.router)
