from __future__ import annotations

from decimal import Decimal
from html import escape
from typing import Iterable

from fairshare.models import Apportionment, Bill, ExtraFee, Item
from fairshare.services.allocation import AllocationResult


FEE_LABELS = {
    Apportionment.PER_ORDER: "per order",
    Apportionment.PER_PERSON: "per person",
}


def money(value: Decimal) -> str:
    return f"{value:.2f}"


def format_item_line(position: int, item: Item) -> str:
    line = f"{position}. {escape(item.name)} x{item.quantity} — {money(item.total_price)}"
    if item.quantity > 1:
        line += f" ({money(item.unit_price)} each)"
    return line


def format_fee_line(position: int, fee: ExtraFee) -> str:
    line = f"{position}. {escape(fee.name)} — {money(fee.amount)}, {FEE_LABELS[fee.apportionment]}"
    if fee.apportionment is Apportionment.PER_PERSON:
        line += f" / {fee.headcount}"
    return line


def _numbered(lines: Iterable[str]) -> list[str]:
    return list(lines) or ["—"]


def format_bill(bill: Bill) -> str:
    lines = ["<b>Items</b>"]
    lines += _numbered(format_item_line(i, item) for i, item in enumerate(bill.items, start=1))
    lines.append("")
    lines.append("<b>Extra fees</b>")
    lines += _numbered(format_fee_line(i, fee) for i, fee in enumerate(bill.fees, start=1))
    lines.append("")
    lines.append(f"Total: <b>{money(bill.total_price)}</b>")
    return "\n".join(lines)


def format_allocation(bill: Bill, result: AllocationResult) -> str:
    lines = ["<b>Pick what you had</b>"]
    for share in result.per_item:
        if share.selected_count:
            lines.append(
                f"{escape(share.name)}: {share.selected_count} × {money(share.unit_price)} → {money(share.contribution)}"
            )
    if not result.total_selected_units:
        lines.append("Nothing selected yet.")

    if bill.fees:
        lines.append("")
        lines.append("<b>Extra fees</b>")
        lines += [format_fee_line(i, fee) for i, fee in enumerate(bill.fees, start=1)]
        if result.per_order_fee_total and result.total_selected_units:
            lines.append(f"Per-order fees per unit: {money(result.per_unit_order_fee_rate)}")
        if result.per_person_fee_share:
            lines.append(f"Your per-person share: {money(result.per_person_fee_share)}")

    lines.append("")
    lines.append(f"You pay: <b>{money(result.total)}</b>")
    return "\n".join(lines)
