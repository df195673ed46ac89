from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Iterable, Sequence

from fairshare.models import Apportionment, Bill, ExtraFee
from fairshare.services.selection import Selection


@dataclass(frozen=True, slots=True)
class ItemContribution:
    item_id: str
    name: str
    selected_count: int
    unit_price: Decimal
    contribution: Decimal


@dataclass(frozen=True, slots=True)
class AllocationResult:
    per_item: Sequence[ItemContribution]
    per_order_fee_total: Decimal
    per_unit_order_fee_rate: Decimal
    per_person_fee_share: Decimal
    total_selected_units: int
    total: Decimal


def _to_decimal(value: Fraction) -> Decimal:
    return Decimal(value.numerator) / Decimal(value.denominator)


def _per_order_fee_total(fees: Iterable[ExtraFee]) -> Fraction:
    return sum(
        (Fraction(fee.amount) for fee in fees if fee.apportionment is Apportionment.PER_ORDER),
        Fraction(0),
    )


def _per_person_fee_share(fees: Iterable[ExtraFee]) -> Fraction:
    return sum(
        (
            Fraction(fee.amount) / fee.headcount
            for fee in fees
            if fee.apportionment is Apportionment.PER_PERSON
        ),
        Fraction(0),
    )


def allocate(bill: Bill, selection: Selection) -> AllocationResult:
    """
    Compute what the owner of ``selection`` owes for ``bill``.

    Per-order fees are spread over the units this participant selected, so a
    participant who claims anything carries the whole per-order pool. Per-person
    fees cost ``amount / headcount`` to every participant, selected units or not.
    Amounts are exact rationals until the final conversion to Decimal.
    """
    if selection.bill != bill:
        raise ValueError("selection belongs to a different bill")

    per_order_fee_total = _per_order_fee_total(bill.fees)
    per_person_fee_share = _per_person_fee_share(bill.fees)

    total_selected_units = selection.total_units
    if total_selected_units > 0:
        per_unit_rate = per_order_fee_total / total_selected_units
    else:
        per_unit_rate = Fraction(0)

    per_item: list[ItemContribution] = []
    total = per_person_fee_share
    for item, count in zip(bill.items, selection.counts):
        unit_price = Fraction(item.total_price) / item.quantity
        contribution = (unit_price + per_unit_rate) * count
        total += contribution
        per_item.append(
            ItemContribution(
                item_id=item.id,
                name=item.name,
                selected_count=count,
                unit_price=_to_decimal(unit_price),
                contribution=_to_decimal(contribution),
            )
        )

    return AllocationResult(
        per_item=tuple(per_item),
        per_order_fee_total=_to_decimal(per_order_fee_total),
        per_unit_order_fee_rate=_to_decimal(per_unit_rate),
        per_person_fee_share=_to_decimal(per_person_fee_share),
        total_selected_units=total_selected_units,
        total=_to_decimal(total),
    )
