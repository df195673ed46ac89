from __future__ import annotations

import asyncio

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import BotCommand

from fairshare.config import get_settings
from fairshare.handlers import basic_router, bill_router, calculate_router
from fairshare.logging import configure_logging, get_logger
from fairshare.services.extraction import ExtractionClient

COMMANDS = [
    BotCommand(command="newbill", description="Start a new bill"),
    BotCommand(command="additem", description="Add an item"),
    BotCommand(command="addfee", description="Add an extra fee"),
    BotCommand(command="bill", description="Show the bill"),
    BotCommand(command="share", description="Get a link for everyone"),
    BotCommand(command="calc", description="Work out what you owe"),
    BotCommand(command="help", description="How it works"),
]


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    bot = Bot(token=settings.bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher()

    dp.include_router(basic_router)
    dp.include_router(calculate_router)
    dp.include_router(bill_router)

    dp["extraction_client"] = ExtractionClient.from_settings(settings)

    log = get_logger(__name__)
    log.info("bot.start", extraction=settings.extraction_enabled)
    try:
        await bot.set_my_commands(COMMANDS)
        await dp.start_polling(bot)
    finally:
        await bot.session.close()
        log.info("bot.stop")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
