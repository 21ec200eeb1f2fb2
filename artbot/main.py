import asyncio
import logging
from aiogram import Bot, Dispatcher
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from artbot.config import settings
from artbot.db.connection import get_db
from artbot.db.repository import Repository
from artbot.bot.handlers import router as user_router
from artbot.bot.admin_handlers import router as admin_router
from artbot.bot.errors import on_error
from artbot.services.audit import AuditLogger
from artbot.services.batch import BatchRunner
from artbot.services.limits import LastImageTracker, RateLimiter
from artbot.services.openai_client import OpenAIClient

logger = logging.getLogger("artbot")


async def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    missing = settings.missing()
    if missing:
        raise SystemExit(f"Missing required configuration: {', '.join(missing)}")

    try:
        db = await get_db(use_fake=settings.use_fake_db, dsn=settings.pg_dsn)
    except Exception as e:
        logger.exception("Error connecting to the database")
        raise SystemExit(1) from e
    logger.info("Connected to %s", "fake database" if settings.use_fake_db else "Postgres")

    bot = Bot(token=settings.bot_token)
    dp = Dispatcher()

    # owner commands first
    dp.include_router(admin_router)
    dp.include_router(user_router)
    dp.errors.register(on_error)

    repo = Repository(db)
    llm = OpenAIClient(
        api_key=settings.openai_api_key,
        image_model=settings.openai_image_model,
        image_size=settings.openai_image_size,
        edit_model=settings.openai_edit_model,
        chat_model=settings.openai_chat_model,
        max_tokens=settings.openai_max_tokens,
        timeout=settings.upstream_timeout,
    )
    limiter = RateLimiter(cooldown_seconds=settings.ai_cooldown_seconds)
    last_images = LastImageTracker()
    batches = BatchRunner(size=settings.proai_batch_size, delay=settings.proai_delay_seconds)
    audit = AuditLogger(bot, settings.log_channel_id)

    @dp.update.outer_middleware()
    async def inject(handler, event, data):
        data["repo"] = repo
        data["llm"] = llm
        data["settings"] = settings
        data["limiter"] = limiter
        data["last_images"] = last_images
        data["batches"] = batches
        data["audit"] = audit
        return await handler(event, data)

    scheduler = AsyncIOScheduler()

    async def prune_job():
        dropped = limiter.prune()
        if dropped:
            logger.debug("pruned %s rate limit entries", dropped)

    scheduler.add_job(prune_job, IntervalTrigger(minutes=10))
    scheduler.start()

    logger.info("Bot started")
    try:
        await dp.start_polling(bot)
    finally:
        scheduler.shutdown(wait=False)
        if not settings.use_fake_db:
            await db.close()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
