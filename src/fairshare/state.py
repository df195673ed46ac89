"""Per-user in-memory state of the bot."""

from __future__ import annotations

from typing import Optional

from fairshare.errors import UnknownItem
from fairshare.models import Bill
from fairshare.services.builder import BillBuilder
from fairshare.services.selection import Selection


class UserStateManager:
    def __init__(self) -> None:
        self._drafts: dict[int, BillBuilder] = {}  # Bills being built
        self._selections: dict[int, Selection] = {}  # Open calculators

    def start_draft(self, user_id: int, bill: Bill | None = None) -> BillBuilder:
        draft = BillBuilder(bill)
        self._drafts[user_id] = draft
        return draft

    def get_draft(self, user_id: int) -> Optional[BillBuilder]:
        return self._drafts.get(user_id)

    def ensure_draft(self, user_id: int) -> BillBuilder:
        draft = self._drafts.get(user_id)
        if draft is None:
            draft = self.start_draft(user_id)
        return draft

    def clear_draft(self, user_id: int) -> None:
        self._drafts.pop(user_id, None)

    def open_selection(self, user_id: int, bill: Bill) -> Selection:
        selection = Selection.empty(bill)
        self._selections[user_id] = selection
        return selection

    def get_selection(self, user_id: int) -> Optional[Selection]:
        return self._selections.get(user_id)

    def adjust_selection(self, user_id: int, item_index: int, delta: int) -> Optional[Selection]:
        selection = self._selections.get(user_id)
        if selection is None:
            return None
        if not 0 <= item_index < len(selection.bill.items):
            raise UnknownItem(f"#{item_index}")
        item = selection.bill.items[item_index]
        selection = selection.adjust(item.id, delta)
        self._selections[user_id] = selection
        return selection

    def reset_selection(self, user_id: int) -> Optional[Selection]:
        selection = self._selections.get(user_id)
        if selection is None:
            return None
        return self.open_selection(user_id, selection.bill)

    def clear_user(self, user_id: int) -> None:
        self._drafts.pop(user_id, None)
        self._selections.pop(user_id, None)


state = UserStateManager()
