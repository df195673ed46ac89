from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Callable, Optional

from fairshare.errors import InvalidFee, InvalidItem
from fairshare.models import Apportionment, Bill, ExtraFee, Item
from fairshare.services.extraction import ExtractionResult
from fairshare.utils.parse import parse_amount, parse_quantity


def _new_id() -> str:
    return uuid.uuid4().hex


def _clean_name(name: object, error: type[Exception]) -> str:
    if not isinstance(name, str) or not name.strip():
        raise error("name must not be empty")
    return name.strip()


class BillBuilder:
    """
    Draft of a bill before it is shared.

    Everything entering the draft is checked here: names must be non-empty,
    prices and amounts go through ``parse_amount`` and quantities through
    ``parse_quantity``. Failures raise InvalidItem / InvalidFee and leave the
    draft untouched.
    """

    def __init__(self, bill: Bill | None = None, id_factory: Callable[[], str] = _new_id) -> None:
        self._new_id = id_factory
        self._items: list[Item] = list(bill.items) if bill is not None else []
        self._fees: list[ExtraFee] = list(bill.fees) if bill is not None else []

    @property
    def items(self) -> tuple[Item, ...]:
        return tuple(self._items)

    @property
    def fees(self) -> tuple[ExtraFee, ...]:
        return tuple(self._fees)

    @property
    def is_empty(self) -> bool:
        return not self._items and not self._fees

    @property
    def total_price(self) -> Decimal:
        return self.build().total_price

    def _make_item(self, item_id: str, name: object, price: object, quantity: object) -> Item:
        clean_name = _clean_name(name, InvalidItem)
        try:
            total_price = parse_amount(price)
        except ValueError as exc:
            raise InvalidItem(f"{clean_name}: {exc}") from exc
        try:
            count = parse_quantity(quantity)
        except ValueError as exc:
            raise InvalidItem(f"{clean_name}: {exc}") from exc
        return Item(id=item_id, name=clean_name, total_price=total_price, quantity=count)

    def _make_fee(
        self,
        fee_id: str,
        name: object,
        amount: object,
        apportionment: object,
        expected_headcount: object,
    ) -> ExtraFee:
        clean_name = _clean_name(name, InvalidFee)
        try:
            value = parse_amount(amount)
        except ValueError as exc:
            raise InvalidFee(f"{clean_name}: {exc}") from exc
        try:
            kind = Apportionment(apportionment)
        except ValueError as exc:
            raise InvalidFee(f"{clean_name}: unknown fee type {apportionment!r}") from exc

        headcount: Optional[int] = None
        if kind is Apportionment.PER_PERSON:
            try:
                headcount = 1 if expected_headcount is None else parse_quantity(expected_headcount)
            except ValueError as exc:
                raise InvalidFee(f"{clean_name}: expected headcount {exc}") from exc
        return ExtraFee(
            id=fee_id,
            name=clean_name,
            amount=value,
            apportionment=kind,
            expected_headcount=headcount,
        )

    def _item_index(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        raise InvalidItem(f"no item with id {item_id}")

    def _fee_index(self, fee_id: str) -> int:
        for index, fee in enumerate(self._fees):
            if fee.id == fee_id:
                return index
        raise InvalidFee(f"no fee with id {fee_id}")

    def add_item(self, name: str, price: object, quantity: object = 1) -> Item:
        item = self._make_item(self._new_id(), name, price, quantity)
        self._items.append(item)
        return item

    def update_item(
        self,
        item_id: str,
        *,
        name: Optional[str] = None,
        price: object = None,
        quantity: object = None,
    ) -> Item:
        index = self._item_index(item_id)
        current = self._items[index]
        item = self._make_item(
            item_id,
            current.name if name is None else name,
            current.total_price if price is None else price,
            current.quantity if quantity is None else quantity,
        )
        self._items[index] = item
        return item

    def remove_item(self, item_id: str) -> Item:
        return self._items.pop(self._item_index(item_id))

    def add_fee(
        self,
        name: str,
        amount: object,
        apportionment: Apportionment | str = Apportionment.PER_ORDER,
        expected_headcount: object = None,
    ) -> ExtraFee:
        fee = self._make_fee(self._new_id(), name, amount, apportionment, expected_headcount)
        self._fees.append(fee)
        return fee

    def update_fee(
        self,
        fee_id: str,
        *,
        name: Optional[str] = None,
        amount: object = None,
        apportionment: Apportionment | str | None = None,
        expected_headcount: object = None,
    ) -> ExtraFee:
        index = self._fee_index(fee_id)
        current = self._fees[index]
        fee = self._make_fee(
            fee_id,
            current.name if name is None else name,
            current.amount if amount is None else amount,
            current.apportionment if apportionment is None else apportionment,
            current.expected_headcount if expected_headcount is None else expected_headcount,
        )
        self._fees[index] = fee
        return fee

    def remove_fee(self, fee_id: str) -> ExtraFee:
        return self._fees.pop(self._fee_index(fee_id))

    def merge_extraction(self, result: ExtractionResult) -> tuple[list[Item], list[ExtraFee]]:
        """
        Append everything the extraction service proposed.

        A receipt line without a quantity counts as one unit and a fee without a
        type is a per-order fee. Any other bad value rejects the whole result.
        """
        items = [
            self._make_item(
                self._new_id(),
                extracted.name,
                extracted.price,
                1 if extracted.quantity is None else extracted.quantity,
            )
            for extracted in result.items
        ]
        fees = [
            self._make_fee(
                self._new_id(),
                extracted.name,
                extracted.amount,
                extracted.apportionment or Apportionment.PER_ORDER,
                extracted.expected_headcount,
            )
            for extracted in result.extra_fees
        ]
        self._items.extend(items)
        self._fees.extend(fees)
        return items, fees

    def clear(self) -> None:
        self._items.clear()
        self._fees.clear()

    def build(self) -> Bill:
        return Bill(items=tuple(self._items), fees=tuple(self._fees))
