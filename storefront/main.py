import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from storefront.bot.handlers import router
from storefront.config import settings
from storefront.constants import LOG_FORMAT
from storefront.db.sqlite import SqliteStore
from storefront.services.payments import build_payment_creator


async def main() -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    if not settings.bot_token:
        raise RuntimeError("BOT_TOKEN is empty. Set BOT_TOKEN in .env")

    store = SqliteStore(settings.db_path)
    store.init_db()

    bot = Bot(token=settings.bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher(store=store, payments=build_payment_creator(settings))
    dp.include_router(router)

    await dp.start_polling(bot)


if __name__ == "__main__":
    asyncio.run(main())
