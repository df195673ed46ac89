from __future__ import annotations

from typing import Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from fairshare.services.selection import Selection

NOOP = "sel:noop"
RESET = "sel:reset"
ITEMS_PER_PAGE = 30


def selection_callback(index: int, delta: int) -> str:
    return f"sel:{index}:{delta:+d}"


def page_callback(page: int) -> str:
    return f"sel:page:{page}"


def parse_page_callback(data: str) -> Optional[int]:
    prefix = "sel:page:"
    if not data.startswith(prefix):
        return None
    try:
        return int(data[len(prefix):])
    except ValueError:
        return None


def page_count(selection: Selection) -> int:
    return max(1, -(-len(selection.bill.items) // ITEMS_PER_PAGE))


def page_of(index: int) -> int:
    return index // ITEMS_PER_PAGE


def parse_selection_callback(data: str) -> Optional[tuple[int, int]]:
    parts = data.split(":")
    if len(parts) != 3 or parts[0] != "sel":
        return None
    try:
        return int(parts[1]), int(parts[2])
    except ValueError:
        return None


def _item_row(selection: Selection, index: int) -> list[InlineKeyboardButton]:
    item = selection.bill.items[index]
    count = selection.counts[index]
    return [
        InlineKeyboardButton(
            text="−" if selection.can_decrease(item.id) else "·",
            callback_data=selection_callback(index, -1) if selection.can_decrease(item.id) else NOOP,
        ),
        InlineKeyboardButton(text=f"{item.name[:24]} {count}/{item.quantity}", callback_data=NOOP),
        InlineKeyboardButton(
            text="+" if selection.can_increase(item.id) else "·",
            callback_data=selection_callback(index, 1) if selection.can_increase(item.id) else NOOP,
        ),
    ]


def build_selection_keyboard(selection: Selection, page: int = 0) -> InlineKeyboardMarkup:
    """
    Item rows for one page of the bill, then page navigation and reset.

    Telegram accepts at most 100 buttons per inline keyboard.
    """
    pages = page_count(selection)
    page = min(max(page, 0), pages - 1)
    start = page * ITEMS_PER_PAGE
    stop = min(start + ITEMS_PER_PAGE, len(selection.bill.items))

    rows: list[list[InlineKeyboardButton]] = [_item_row(selection, index) for index in range(start, stop)]
    if pages > 1:
        rows.append(
            [
                InlineKeyboardButton(
                    text="‹" if page > 0 else "·",
                    callback_data=page_callback(page - 1) if page > 0 else NOOP,
                ),
                InlineKeyboardButton(text=f"{page + 1}/{pages}", callback_data=NOOP),
                InlineKeyboardButton(
                    text="›" if page < pages - 1 else "·",
                    callback_data=page_callback(page + 1) if page < pages - 1 else NOOP,
                ),
            ]
        )
    if not selection.is_empty:
        rows.append([InlineKeyboardButton(text="Reset", callback_data=RESET)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def share_keyboard(url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="Open calculator", url=url)]]
    )
