from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from fairshare.models import MAX_AMOUNT_DIGITS, Apportionment, amount_in_range


AMOUNT_RE = re.compile(r"^[+]?\d+(?:[.,]\d+)?$")

# Accepted spellings for fee apportionment
APPORTIONMENT_ALIASES = {
    "perorder": Apportionment.PER_ORDER,
    "order": Apportionment.PER_ORDER,
    "units": Apportionment.PER_ORDER,
    "perperson": Apportionment.PER_PERSON,
    "person": Apportionment.PER_PERSON,
    "head": Apportionment.PER_PERSON,
}


def parse_amount(value: object) -> Decimal:
    """
    Convert a user or payload supplied amount to a non-negative Decimal.

    Supported inputs:
    - Decimal and int values
    - strings like "12", "12.50", "12,50" (surrounding currency signs are not allowed)

    Floats are converted through their shortest repr, so 0.1 becomes Decimal("0.1").
    """
    if isinstance(value, bool):
        raise ValueError("amount must be a number")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip()
        if not AMOUNT_RE.match(text):
            raise ValueError(f"not an amount: {value!r}")
        amount = Decimal(text.replace(",", "."))
    else:
        raise ValueError(f"not an amount: {value!r}")

    if not amount.is_finite() or amount < 0:
        raise ValueError(f"amount must be a non-negative number: {value!r}")
    if not amount_in_range(amount):
        raise ValueError(f"amount is out of range: {value!r}")
    return amount


def parse_quantity(value: object) -> int:
    if isinstance(value, bool):
        raise ValueError("quantity must be a whole number")

    if isinstance(value, int):
        quantity = value
    elif isinstance(value, (Decimal, float)):
        if isinstance(value, Decimal) and value.is_finite() and value.adjusted() >= MAX_AMOUNT_DIGITS:
            raise ValueError(f"quantity is out of range: {value!r}")
        try:
            integral = value == int(value)
        except (ValueError, OverflowError, InvalidOperation) as exc:
            raise ValueError(f"not a quantity: {value!r}") from exc
        if not integral:
            raise ValueError(f"quantity must be a whole number: {value!r}")
        quantity = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        quantity = int(value.strip())
    else:
        raise ValueError(f"not a quantity: {value!r}")

    if quantity < 1:
        raise ValueError(f"quantity must be at least 1: {value!r}")
    return quantity


def parse_apportionment(value: str) -> Apportionment:
    key = re.sub(r"[\s_\-]", "", value).lower()
    try:
        return APPORTIONMENT_ALIASES[key]
    except KeyError as exc:
        raise ValueError(f"unknown fee type: {value!r} (use perOrder or perPerson)") from exc


def split_command_args(text: str) -> list[str]:
    """Split '/cmd a | b | c' into ['a', 'b', 'c']; an empty tail gives []."""
    parts = text.split(maxsplit=1)
    if len(parts) < 2:
        return []
    return [part.strip() for part in parts[1].split("|")]
