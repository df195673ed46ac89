from __future__ import annotations

from html import escape
from typing import Optional

from aiogram import Bot, F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from fairshare.config import get_settings
from fairshare.errors import DecodeError, ExtractionError, InvalidBill
from fairshare.handlers.calculate import DECODE_MESSAGES
from fairshare.keyboards import share_keyboard
from fairshare.logging import get_logger
from fairshare.services.builder import BillBuilder
from fairshare.services.codec import decode, encode, share_url
from fairshare.services.extraction import ExtractionClient
from fairshare.services.summary import format_bill, format_fee_line, format_item_line
from fairshare.state import state
from fairshare.utils.parse import parse_apportionment, split_command_args

bill_router = Router()

log = get_logger(__name__)

# Telegram limits /start payloads to 64 characters
DEEP_LINK_LIMIT = 64


def _kept(value: str) -> Optional[str]:
    return None if value in ("", "-") else value


def _position(args: list[str], size: int) -> Optional[int]:
    if not args:
        return None
    try:
        position = int(args[0])
    except ValueError:
        return None
    if not 1 <= position <= size:
        return None
    return position - 1


def _draft(message: Message) -> Optional[BillBuilder]:
    user = message.from_user
    if not user:
        return None
    return state.get_draft(user.id)


@bill_router.message(Command("newbill"))
async def cmd_newbill(message: Message) -> None:
    user = message.from_user
    if not user:
        return
    state.start_draft(user.id)
    await message.answer(
        "🧾 New bill started.\n\n"
        "Add items: /additem name | price | [quantity]\n"
        "Add fees: /addfee name | amount | [perOrder|perPerson] | [headcount]\n"
        "Or just send a photo of the receipt."
    )


@bill_router.message(Command("additem"))
async def cmd_additem(message: Message) -> None:
    user = message.from_user
    if not user or not message.text:
        return
    args = split_command_args(message.text)
    if len(args) not in (2, 3):
        await message.answer("Usage: /additem name | price | [quantity]")
        return

    draft = state.ensure_draft(user.id)
    try:
        item = draft.add_item(args[0], args[1], args[2] if len(args) == 3 else 1)
    except InvalidBill as exc:
        await message.answer(f"Item not added: {escape(str(exc))}")
        return
    await message.answer(f"Added {format_item_line(len(draft.items), item)}")


@bill_router.message(Command("edititem"))
async def cmd_edititem(message: Message) -> None:
    draft = _draft(message)
    if draft is None or not message.text:
        await message.answer("Start a bill first with /newbill")
        return
    args = split_command_args(message.text)
    index = _position(args, len(draft.items))
    if index is None or len(args) != 4:
        await message.answer("Usage: /edititem number | name | price | quantity (use - to keep a field)")
        return

    try:
        item = draft.update_item(
            draft.items[index].id,
            name=_kept(args[1]),
            price=_kept(args[2]),
            quantity=_kept(args[3]),
        )
    except InvalidBill as exc:
        await message.answer(f"Item not changed: {escape(str(exc))}")
        return
    await message.answer(f"Updated {format_item_line(index + 1, item)}")


@bill_router.message(Command("removeitem"))
async def cmd_removeitem(message: Message) -> None:
    draft = _draft(message)
    if draft is None or not message.text:
        await message.answer("Start a bill first with /newbill")
        return
    index = _position(split_command_args(message.text), len(draft.items))
    if index is None:
        await message.answer("Usage: /removeitem number")
        return
    item = draft.remove_item(draft.items[index].id)
    await message.answer(f"Removed {escape(item.name)}")


@bill_router.message(Command("addfee"))
async def cmd_addfee(message: Message) -> None:
    user = message.from_user
    if not user or not message.text:
        return
    args = split_command_args(message.text)
    if len(args) not in (2, 3, 4):
        await message.answer("Usage: /addfee name | amount | [perOrder|perPerson] | [headcount]")
        return

    try:
        apportionment = parse_apportionment(args[2]) if len(args) > 2 else "perOrder"
    except ValueError as exc:
        await message.answer(escape(str(exc)))
        return

    draft = state.ensure_draft(user.id)
    try:
        fee = draft.add_fee(args[0], args[1], apportionment, args[3] if len(args) == 4 else None)
    except InvalidBill as exc:
        await message.answer(f"Fee not added: {escape(str(exc))}")
        return
    await message.answer(f"Added {format_fee_line(len(draft.fees), fee)}")


@bill_router.message(Command("editfee"))
async def cmd_editfee(message: Message) -> None:
    draft = _draft(message)
    if draft is None or not message.text:
        await message.answer("Start a bill first with /newbill")
        return
    args = split_command_args(message.text)
    index = _position(args, len(draft.fees))
    if index is None or len(args) != 5:
        await message.answer(
            "Usage: /editfee number | name | amount | perOrder|perPerson | headcount (use - to keep a field)"
        )
        return

    try:
        kind = _kept(args[3])
        fee = draft.update_fee(
            draft.fees[index].id,
            name=_kept(args[1]),
            amount=_kept(args[2]),
            apportionment=parse_apportionment(kind) if kind else None,
            expected_headcount=_kept(args[4]),
        )
    except (InvalidBill, ValueError) as exc:
        await message.answer(f"Fee not changed: {escape(str(exc))}")
        return
    await message.answer(f"Updated {format_fee_line(index + 1, fee)}")


@bill_router.message(Command("removefee"))
async def cmd_removefee(message: Message) -> None:
    draft = _draft(message)
    if draft is None or not message.text:
        await message.answer("Start a bill first with /newbill")
        return
    index = _position(split_command_args(message.text), len(draft.fees))
    if index is None:
        await message.answer("Usage: /removefee number")
        return
    fee = draft.remove_fee(draft.fees[index].id)
    await message.answer(f"Removed {escape(fee.name)}")


@bill_router.message(Command("bill"))
async def cmd_bill(message: Message) -> None:
    draft = _draft(message)
    if draft is None:
        await message.answer("No bill in progress. Start one with /newbill")
        return
    await message.answer(format_bill(draft.build()))


@bill_router.message(Command("share"))
async def cmd_share(message: Message, bot: Bot) -> None:
    draft = _draft(message)
    if draft is None or draft.is_empty:
        await message.answer("Nothing to share yet. Add items with /additem")
        return

    bill = draft.build()
    reference = encode(bill)
    log.info("bill.shared", items=len(bill.items), fees=len(bill.fees), length=len(reference))

    text = (
        f"{format_bill(bill)}\n\n"
        "Forward this to everyone at the table, each of them picks what they had:\n"
        f"<code>/calc {reference}</code>"
    )
    if len(reference) <= DEEP_LINK_LIMIT:
        me = await bot.me()
        text += f"\n\nor open https://t.me/{me.username}?start={reference}"

    settings = get_settings()
    if settings.share_base_url:
        await message.answer(text, reply_markup=share_keyboard(share_url(reference, settings.share_base_url)))
    else:
        await message.answer(text)


@bill_router.message(Command("edit"))
async def cmd_edit(message: Message, command: CommandObject) -> None:
    user = message.from_user
    if not user:
        return
    if not command.args:
        await message.answer("Usage: /edit <bill reference>")
        return
    try:
        bill = decode(command.args.strip())
    except DecodeError as exc:
        await message.answer(DECODE_MESSAGES[exc.reason])
        return

    state.start_draft(user.id, bill)
    await message.answer(
        f"{format_bill(bill)}\n\nEditing a copy of this bill. Use /share to get a new link."
    )


@bill_router.message(F.photo)
async def on_receipt_photo(
    message: Message,
    bot: Bot,
    extraction_client: Optional[ExtractionClient] = None,
) -> None:
    user = message.from_user
    if not user or not message.photo:
        return
    if extraction_client is None:
        await message.answer("Receipt import is not configured. Add items with /additem")
        return

    draft = state.ensure_draft(user.id)
    status = await message.answer("🔍 Reading the receipt...")
    image = await bot.download(message.photo[-1])
    if image is None:
        await status.edit_text("Could not download the photo, try again.")
        return

    try:
        result = await extraction_client.extract(image.read())
        items, fees = draft.merge_extraction(result)
    except ExtractionError as exc:
        log.warning("receipt.failed", user_id=user.id, error=str(exc))
        await status.edit_text(f"😕 Could not read the receipt: {escape(str(exc))}")
        return
    except InvalidBill as exc:
        log.warning("receipt.invalid", user_id=user.id, error=str(exc))
        await status.edit_text(f"😕 The receipt was read but looks wrong: {escape(str(exc))}")
        return

    await status.edit_text(
        f"✅ Added {len(items)} item(s) and {len(fees)} fee(s).\n\n{format_bill(draft.build())}"
    )
