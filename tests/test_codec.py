import base64
import json
import re
import zlib
from decimal import Decimal
from urllib.parse import quote

import pytest

from fairshare.errors import DecodeFailure, MalformedReference, SchemaMismatch
from fairshare.models import Apportionment, Bill, ExtraFee, Item
from fairshare.services.codec import decode, encode, share_url


def make_bill() -> Bill:
    return Bill(
        items=[
            Item("8f1c", "Original Recipe (4 pcs)", Decimal("29.90"), 4),
            Item("a2b3", "Mashed potato & gravy / large", Decimal("9"), 2),
            Item("ffee", "蛋挞", Decimal("0"), 1),
        ],
        fees=[
            ExtraFee("d1", "Delivery", Decimal("6.5"), Apportionment.PER_ORDER),
            ExtraFee("s1", "Service", Decimal("20"), Apportionment.PER_PERSON, expected_headcount=4),
            ExtraFee("p1", "Packaging", Decimal("2.00"), Apportionment.PER_PERSON),
        ],
    )


def raw_reference(document: object) -> str:
    raw = json.dumps(document).encode("utf-8")
    return "b1_" + base64.urlsafe_b64encode(zlib.compress(raw)).rstrip(b"=").decode("ascii")


def valid_document() -> dict:
    return {
        "items": [{"id": "a", "name": "Fries", "price": "10", "quantity": 2}],
        "extraFees": [{"id": "f", "name": "Delivery", "amount": "6", "type": "perOrder"}],
    }


def test_round_trip():
    bill = make_bill()

    decoded = decode(encode(bill))

    assert decoded == bill
    assert [item.id for item in decoded.items] == ["8f1c", "a2b3", "ffee"]
    assert str(decoded.items[0].total_price) == "29.90"
    assert decoded.fees[2].expected_headcount is None


def test_round_trip_empty_bill():
    assert decode(encode(Bill())) == Bill()


def test_reference_is_a_single_url_segment():
    reference = encode(make_bill())

    assert reference.startswith("b1_")
    assert re.fullmatch(r"[A-Za-z0-9_-]+", reference)
    assert quote(reference, safe="") == reference


def test_share_url():
    assert share_url("b1_abc", "https://split.example/") == "https://split.example/calculate/b1_abc"


def test_truncated_reference_is_malformed():
    reference = encode(make_bill())

    with pytest.raises(MalformedReference) as exc_info:
        decode(reference[:-6])

    assert exc_info.value.reason is DecodeFailure.MALFORMED_REFERENCE


@pytest.mark.parametrize(
    "reference",
    [
        "",
        "   ",
        "hello",
        "b2_eJyrVgpKLS4tUrJSqAUAG4AEYw",
        "b1_",
        "b1_!!!not-base64",
        "b1_" + base64.urlsafe_b64encode(b"plain text").decode("ascii").rstrip("="),
        "%7B%22items%22",
        "{not json",
    ],
)
def test_garbage_is_malformed(reference):
    with pytest.raises(MalformedReference):
        decode(reference)


def test_json_that_is_not_an_object_is_malformed():
    with pytest.raises(MalformedReference):
        decode(raw_reference([1, 2, 3]))


def test_valid_document_decodes():
    bill = decode(raw_reference(valid_document()))

    assert bill.items[0].total_price == Decimal("10")
    assert bill.fees[0].apportionment is Apportionment.PER_ORDER


@pytest.mark.parametrize(
    "path, value",
    [
        (("items", 0, "quantity"), -1),
        (("items", 0, "quantity"), 0),
        (("items", 0, "quantity"), "2"),
        (("items", 0, "price"), "-1"),
        (("items", 0, "price"), "abc"),
        (("items", 0, "id"), ""),
        (("extraFees", 0, "type"), "perTable"),
        (("extraFees", 0, "amount"), "-3"),
        (("extraFees", 0, "expectedCount"), 0),
        (("items", 0, "price"), "1E+999999999"),
        (("items", 0, "price"), "1E-999999999"),
        (("extraFees", 0, "amount"), "1E+999999999"),
    ],
)
def test_wrong_field_values_are_schema_mismatch(path, value):
    document = valid_document()
    target = document
    for key in path[:-1]:
        target = target[key]
    target[path[-1]] = value

    with pytest.raises(SchemaMismatch) as exc_info:
        decode(raw_reference(document))

    assert exc_info.value.reason is DecodeFailure.SCHEMA_MISMATCH


@pytest.mark.parametrize("field", ["id", "quantity", "price"])
def test_missing_item_field_is_schema_mismatch(field):
    document = valid_document()
    del document["items"][0][field]

    with pytest.raises(SchemaMismatch):
        decode(raw_reference(document))


def test_missing_fee_list_is_schema_mismatch():
    document = valid_document()
    del document["extraFees"]

    with pytest.raises(SchemaMismatch):
        decode(raw_reference(document))


def test_duplicate_item_ids_are_schema_mismatch():
    document = valid_document()
    document["items"].append(dict(document["items"][0]))

    with pytest.raises(SchemaMismatch):
        decode(raw_reference(document))


def test_legacy_percent_encoded_reference():
    legacy = {
        "items": [{"id": "c0ffee", "name": "吮指原味鸡", "price": 29.9, "quantity": 4}],
        "extraFees": [{"id": "f1", "name": "Packaging", "amount": 2, "type": "perPerson"}],
    }
    reference = quote(json.dumps(legacy, ensure_ascii=False), safe="")

    bill = decode(reference)

    assert bill.items[0].total_price == Decimal("29.9")
    assert bill.items[0].name == "吮指原味鸡"
    assert bill.fees[0].headcount == 1
