from __future__ import annotations

from dataclasses import dataclass

from fairshare.models import Bill


@dataclass(frozen=True, slots=True)
class Selection:
    """How many units of each item one participant claims, in bill order."""

    bill: Bill
    counts: tuple[int, ...]

    def __post_init__(self) -> None:
        counts = tuple(self.counts)
        if len(counts) != len(self.bill.items):
            raise ValueError("selection must have one count per item")
        for item, count in zip(self.bill.items, counts):
            if not 0 <= count <= item.quantity:
                raise ValueError(f"count for item {item.id} out of range: {count}")
        object.__setattr__(self, "counts", counts)

    @classmethod
    def empty(cls, bill: Bill) -> Selection:
        return cls(bill=bill, counts=(0,) * len(bill.items))

    def count(self, item_id: str) -> int:
        return self.counts[self.bill.index_of(item_id)]

    @property
    def total_units(self) -> int:
        return sum(self.counts)

    @property
    def is_empty(self) -> bool:
        return self.total_units == 0

    def can_increase(self, item_id: str) -> bool:
        index = self.bill.index_of(item_id)
        return self.counts[index] < self.bill.items[index].quantity

    def can_decrease(self, item_id: str) -> bool:
        return self.count(item_id) > 0

    def adjust(self, item_id: str, delta: int) -> Selection:
        """Return a new selection with the item's count moved by delta, clamped to [0, quantity]."""
        index = self.bill.index_of(item_id)
        quantity = self.bill.items[index].quantity
        new_count = max(0, min(quantity, self.counts[index] + delta))
        if new_count == self.counts[index]:
            return self
        counts = list(self.counts)
        counts[index] = new_count
        return Selection(bill=self.bill, counts=tuple(counts))
