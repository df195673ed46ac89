from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import Message

from fairshare.handlers.calculate import open_calculator
from fairshare.state import state

basic_router = Router()

HELP_TEXT = (
    "<b>Split a bill</b>\n\n"
    "Whoever paid:\n"
    "/newbill — start a bill\n"
    "/additem name | price | [quantity] — add a line of the receipt\n"
    "/edititem, /removeitem — fix a line\n"
    "/addfee name | amount | [perOrder|perPerson] | [headcount] — delivery, packaging, service…\n"
    "/editfee, /removefee — fix a fee\n"
    "or send a photo of the receipt\n"
    "/bill — show the bill\n"
    "/share — get a link for everyone\n"
    "/edit reference — change a bill you already shared\n\n"
    "Everyone else:\n"
    "/calc reference — pick what you had and see what you owe\n\n"
    "Per-order fees are spread over the units you pick. "
    "Per-person fees are split by the expected number of people."
)


@basic_router.message(CommandStart())
async def cmd_start(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return

    # Deep link: /start <reference>
    if command.args:
        await open_calculator(message, command.args.strip())
        return

    state.clear_user(user.id)
    await message.answer(f"👋 Hi, {user.first_name}!\n\n{HELP_TEXT}")


@basic_router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT)
