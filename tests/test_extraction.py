from decimal import Decimal

import httpx
import pytest

from fairshare.config import Settings
from fairshare.errors import ExtractionError, InvalidFee, InvalidItem
from fairshare.models import Apportionment
from fairshare.services.extraction import ExtractionClient, parse_extraction_payload

URL = "https://ocr.example/api/analyze"


def test_parse_payload():
    result = parse_extraction_payload(
        {
            "brand": "KFC",
            "items": [{"name": "Original Recipe", "quantity": 4, "price": Decimal("29.9")}],
            "extraFees": [{"name": "Packaging", "amount": 2, "type": "perPerson", "expectedCount": 3}],
        }
    )

    assert result.brand == "KFC"
    assert result.items[0].price == Decimal("29.9")
    assert result.extra_fees[0].apportionment is Apportionment.PER_PERSON
    assert result.extra_fees[0].expected_headcount == 3


def test_parse_payload_defaults_to_empty_lists():
    result = parse_extraction_payload({})

    assert result.items == []
    assert result.extra_fees == []


def test_parse_error_payload():
    with pytest.raises(ExtractionError, match="Invalid JSON response from AI"):
        parse_extraction_payload({"error": "Invalid JSON response from AI"})


def test_parse_non_object_payload():
    with pytest.raises(ExtractionError):
        parse_extraction_payload([{"name": "Fries"}])


def test_item_type_mismatch_is_invalid_item():
    with pytest.raises(InvalidItem):
        parse_extraction_payload({"items": [{"name": "Fries", "price": "a lot"}]})


def test_fee_type_mismatch_is_invalid_fee():
    with pytest.raises(InvalidFee):
        parse_extraction_payload({"extraFees": [{"name": "Tip", "amount": 3, "type": "perTable"}]})


@pytest.mark.asyncio
async def test_client_posts_image():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = request.content
        return httpx.Response(
            200,
            json={
                "items": [{"name": "Fries", "quantity": 2, "price": 10.5}],
                "extraFees": [{"name": "Delivery", "amount": 6, "type": "perOrder"}],
            },
        )

    client = ExtractionClient(URL, transport=httpx.MockTransport(handler))
    result = await client.extract(b"\xff\xd8fake-jpeg", filename="receipt.jpg")

    assert seen["method"] == "POST"
    assert b'name="image"' in seen["body"]
    assert b"fake-jpeg" in seen["body"]
    assert result.items[0].price == Decimal("10.5")
    assert result.extra_fees[0].apportionment is Apportionment.PER_ORDER


@pytest.mark.asyncio
async def test_client_error_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "Failed to process image"}))
    client = ExtractionClient(URL, transport=transport)

    with pytest.raises(ExtractionError, match="Failed to process image"):
        await client.extract(b"image")


@pytest.mark.asyncio
async def test_client_non_json_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
    client = ExtractionClient(URL, transport=transport)

    with pytest.raises(ExtractionError):
        await client.extract(b"image")


@pytest.mark.asyncio
async def test_client_http_error_without_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"detail": "busy"}))
    client = ExtractionClient(URL, transport=transport)

    with pytest.raises(ExtractionError, match="503"):
        await client.extract(b"image")


@pytest.mark.asyncio
async def test_client_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = ExtractionClient(URL, transport=httpx.MockTransport(handler))

    with pytest.raises(ExtractionError):
        await client.extract(b"image")


def test_client_from_settings():
    disabled = Settings(_env_file=None, BOT_TOKEN="token")
    enabled = Settings(_env_file=None, BOT_TOKEN="token", EXTRACTION_URL=URL, EXTRACTION_TIMEOUT=5)

    assert ExtractionClient.from_settings(disabled) is None
    assert isinstance(ExtractionClient.from_settings(enabled), ExtractionClient)
