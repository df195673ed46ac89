from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from fairshare.errors import DecodeError, DecodeFailure, UnknownItem
from fairshare.keyboards import (
    NOOP,
    RESET,
    build_selection_keyboard,
    page_of,
    parse_page_callback,
    parse_selection_callback,
)
from fairshare.logging import get_logger
from fairshare.models import Bill
from fairshare.services.allocation import allocate
from fairshare.services.codec import decode
from fairshare.services.selection import Selection
from fairshare.services.summary import format_allocation
from fairshare.state import state

calculate_router = Router()

log = get_logger(__name__)

DECODE_MESSAGES = {
    DecodeFailure.MALFORMED_REFERENCE: "❌ This bill link is broken or incomplete. Ask for a fresh one.",
    DecodeFailure.SCHEMA_MISMATCH: "❌ This bill link was read, but the bill inside is not valid.",
}


def render_calculator(bill: Bill, selection: Selection) -> str:
    return format_allocation(bill, allocate(bill, selection))


async def open_calculator(message: Message, reference: str) -> None:
    user = message.from_user
    if not user:
        return

    try:
        bill = decode(reference)
    except DecodeError as exc:
        await message.answer(DECODE_MESSAGES[exc.reason])
        return

    if not bill.items and not bill.fees:
        await message.answer("This bill is empty.")
        return

    selection = state.open_selection(user.id, bill)
    log.info("calculator.open", user_id=user.id, items=len(bill.items), fees=len(bill.fees))
    await message.answer(
        render_calculator(bill, selection),
        reply_markup=build_selection_keyboard(selection),
    )


@calculate_router.message(Command("calc"))
async def cmd_calc(message: Message, command: CommandObject) -> None:
    if not command.args:
        await message.answer("Usage: /calc <bill reference>")
        return
    await open_calculator(message, command.args.strip())


@calculate_router.callback_query(F.data.startswith("sel:"))
async def cb_selection(callback: CallbackQuery) -> None:
    user = callback.from_user
    if callback.data == NOOP or not user:
        await callback.answer()
        return

    previous = state.get_selection(user.id)
    if previous is None:
        await callback.answer("Open the bill again with /calc.")
        return

    # Old or deleted messages arrive as InaccessibleMessage and cannot be edited
    if not isinstance(callback.message, Message):
        await callback.answer("Open the bill again with /calc.")
        return

    data = callback.data or ""
    page = parse_page_callback(data)
    if page is not None:
        await callback.message.edit_reply_markup(reply_markup=build_selection_keyboard(previous, page))
        await callback.answer()
        return

    if data == RESET:
        selection = state.reset_selection(user.id)
        page = 0
    else:
        parsed = parse_selection_callback(data)
        if parsed is None:
            await callback.answer()
            return
        try:
            selection = state.adjust_selection(user.id, *parsed)
        except UnknownItem:
            await callback.answer("This calculator is outdated, open the bill again.")
            return
        page = page_of(parsed[0])

    if selection is None or selection == previous:
        await callback.answer()
        return

    await callback.message.edit_text(
        render_calculator(selection.bill, selection),
        reply_markup=build_selection_keyboard(selection, page),
    )
    await callback.answer()
