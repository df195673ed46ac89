from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from fairshare.errors import InvalidFee, InvalidItem, UnknownItem


class Apportionment(str, Enum):
    PER_ORDER = "perOrder"
    PER_PERSON = "perPerson"


# Amounts stay below 10**15 and carry at most 20 decimal places
MAX_AMOUNT_DIGITS = 15
MAX_AMOUNT_SCALE = 20


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def amount_in_range(value: Decimal) -> bool:
    """Check the magnitude of a finite Decimal without expanding its exponent."""
    return value.adjusted() < MAX_AMOUNT_DIGITS and value.as_tuple().exponent >= -MAX_AMOUNT_SCALE


def _is_money(value: object) -> bool:
    return isinstance(value, Decimal) and value.is_finite() and value >= 0 and amount_in_range(value)


@dataclass(frozen=True, slots=True)
class Item:
    id: str
    name: str
    total_price: Decimal
    quantity: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise InvalidItem("item id must be a non-empty string")
        if not isinstance(self.name, str):
            raise InvalidItem(f"item {self.id}: name must be a string")
        if not _is_money(self.total_price):
            raise InvalidItem(f"item {self.id}: price must be a non-negative decimal of sane size")
        if not _is_count(self.quantity) or self.quantity < 1:
            raise InvalidItem(f"item {self.id}: quantity must be a positive integer")

    @property
    def unit_price(self) -> Decimal:
        return self.total_price / self.quantity


@dataclass(frozen=True, slots=True)
class ExtraFee:
    id: str
    name: str
    amount: Decimal
    apportionment: Apportionment = Apportionment.PER_ORDER
    expected_headcount: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise InvalidFee("fee id must be a non-empty string")
        if not isinstance(self.name, str):
            raise InvalidFee(f"fee {self.id}: name must be a string")
        if not _is_money(self.amount):
            raise InvalidFee(f"fee {self.id}: amount must be a non-negative decimal of sane size")
        if not isinstance(self.apportionment, Apportionment):
            raise InvalidFee(f"fee {self.id}: unknown apportionment {self.apportionment!r}")
        if self.expected_headcount is not None and (
            not _is_count(self.expected_headcount) or self.expected_headcount < 1
        ):
            raise InvalidFee(f"fee {self.id}: expected headcount must be a positive integer")

    @property
    def headcount(self) -> int:
        return self.expected_headcount or 1


@dataclass(frozen=True, slots=True)
class Bill:
    items: tuple[Item, ...] = ()
    fees: tuple[ExtraFee, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "fees", tuple(self.fees))

        seen: set[str] = set()
        for item in self.items:
            if not isinstance(item, Item):
                raise InvalidItem(f"not an item: {item!r}")
            if item.id in seen:
                raise InvalidItem(f"duplicate item id {item.id}")
            seen.add(item.id)

        seen = set()
        for fee in self.fees:
            if not isinstance(fee, ExtraFee):
                raise InvalidFee(f"not a fee: {fee!r}")
            if fee.id in seen:
                raise InvalidFee(f"duplicate fee id {fee.id}")
            seen.add(fee.id)

    def index_of(self, item_id: str) -> int:
        for index, item in enumerate(self.items):
            if item.id == item_id:
                return index
        raise UnknownItem(item_id)

    def item(self, item_id: str) -> Item:
        return self.items[self.index_of(item_id)]

    @property
    def total_price(self) -> Decimal:
        items_total = sum((item.total_price for item in self.items), Decimal(0))
        fees_total = sum((fee.amount for fee in self.fees), Decimal(0))
        return items_total + fees_total
