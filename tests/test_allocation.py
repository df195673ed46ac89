from decimal import Decimal
from itertools import product

import pytest

from fairshare.models import Apportionment, Bill, ExtraFee, Item
from fairshare.services.allocation import allocate
from fairshare.services.selection import Selection


def test_delivery_fee_goes_to_selected_units():
    bill = Bill(
        items=[Item("fries", "Fries", Decimal("10"), 2)],
        fees=[ExtraFee("delivery", "Delivery", Decimal("6"), Apportionment.PER_ORDER)],
    )
    selection = Selection.empty(bill).adjust("fries", 1)

    result = allocate(bill, selection)

    assert result.per_unit_order_fee_rate == Decimal("6")
    assert result.per_item[0].unit_price == Decimal("5")
    assert result.per_item[0].contribution == Decimal("11")
    assert result.total == Decimal("11")


def test_per_person_fee_without_selection():
    bill = Bill(
        fees=[ExtraFee("service", "Service", Decimal("20"), Apportionment.PER_PERSON, expected_headcount=4)],
    )

    result = allocate(bill, Selection.empty(bill))

    assert result.per_person_fee_share == Decimal("5")
    assert result.total == Decimal("5")


def test_zero_selection_only_pays_per_person_fees():
    bill = Bill(
        items=[Item("a", "Burger", Decimal("12.50"), 1), Item("b", "Wings", Decimal("20"), 4)],
        fees=[
            ExtraFee("f1", "Delivery", Decimal("8"), Apportionment.PER_ORDER),
            ExtraFee("f2", "Packaging", Decimal("3"), Apportionment.PER_PERSON, expected_headcount=3),
            ExtraFee("f3", "Tip", Decimal("4"), Apportionment.PER_PERSON),
        ],
    )

    result = allocate(bill, Selection.empty(bill))

    assert result.total_selected_units == 0
    assert result.per_unit_order_fee_rate == 0
    assert result.total == Decimal("5")
    assert all(share.contribution == 0 for share in result.per_item)


def test_zero_selection_without_per_person_fees_is_free():
    bill = Bill(
        items=[Item("a", "Burger", Decimal("12.50"), 1)],
        fees=[ExtraFee("f1", "Delivery", Decimal("8"), Apportionment.PER_ORDER)],
    )

    assert allocate(bill, Selection.empty(bill)).total == 0


def test_full_selection_pays_whole_bill():
    bill = Bill(
        items=[Item("a", "Nuggets", Decimal("10"), 3), Item("b", "Cola", Decimal("7.99"), 1)],
        fees=[
            ExtraFee("f1", "Delivery", Decimal("5"), Apportionment.PER_ORDER),
            ExtraFee("f2", "Box", Decimal("2"), Apportionment.PER_PERSON),
        ],
    )
    selection = Selection.empty(bill).adjust("a", 3).adjust("b", 1)

    result = allocate(bill, selection)

    assert result.total == Decimal("24.99")
    assert result.total == bill.total_price


def test_total_is_monotonic_in_selected_units():
    bill = Bill(
        items=[Item("a", "Tart", Decimal("9.90"), 3), Item("b", "Tea", Decimal("4"), 2)],
        fees=[
            ExtraFee("f1", "Delivery", Decimal("7"), Apportionment.PER_ORDER),
            ExtraFee("f2", "Service", Decimal("10"), Apportionment.PER_PERSON, expected_headcount=3),
        ],
    )

    for a, b in product(range(4), range(3)):
        selection = Selection(bill=bill, counts=(a, b))
        total = allocate(bill, selection).total
        if a < 3:
            assert allocate(bill, selection.adjust("a", 1)).total >= total
        if b < 2:
            assert allocate(bill, selection.adjust("b", 1)).total >= total
        assert total >= 0


def test_per_order_fees_are_charged_to_each_claimant():
    bill = Bill(
        items=[Item("a", "Pizza", Decimal("24"), 8)],
        fees=[ExtraFee("f1", "Delivery", Decimal("6"), Apportionment.PER_ORDER)],
    )
    alice = Selection.empty(bill).adjust("a", 2)
    bob = Selection.empty(bill).adjust("a", 6)

    assert allocate(bill, alice).total == Decimal("12")
    assert allocate(bill, bob).total == Decimal("24")


def test_headcount_on_per_order_fee_is_ignored():
    bill = Bill(
        items=[Item("a", "Soup", Decimal("5"), 1)],
        fees=[ExtraFee("f1", "Delivery", Decimal("6"), Apportionment.PER_ORDER, expected_headcount=3)],
    )

    result = allocate(bill, Selection.empty(bill).adjust("a", 1))

    assert result.per_order_fee_total == Decimal("6")
    assert result.total == Decimal("11")


def test_allocate_is_deterministic():
    bill = Bill(
        items=[Item("a", "Dumplings", Decimal("10"), 3)],
        fees=[ExtraFee("f1", "Delivery", Decimal("1"), Apportionment.PER_ORDER)],
    )
    selection = Selection.empty(bill).adjust("a", 2)

    assert allocate(bill, selection) == allocate(bill, selection)


def test_selection_from_another_bill_is_rejected():
    bill = Bill(items=[Item("a", "Soup", Decimal("5"), 1)])
    other = Bill(items=[Item("b", "Salad", Decimal("5"), 1)])

    with pytest.raises(ValueError):
        allocate(bill, Selection.empty(other))
