"""Shareable bill references.

A reference is ``"b1_" + base64url(zlib(json))`` without padding. It only uses
``[A-Za-z0-9_-]``, so it fits in one URL path segment and in a Telegram /start
payload. The JSON document keeps the web client's shape::

    {"items": [{"id", "name", "price", "quantity"}],
     "extraFees": [{"id", "name", "amount", "type", "expectedCount"?}]}

Amounts are written as decimal strings so they come back exactly as encoded.
References made by the web client before versioning (percent-encoded JSON)
are still accepted.
"""

from __future__ import annotations

import base64
import binascii
import json
import zlib
from decimal import Decimal
from typing import Any, List, Optional
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fairshare.errors import DecodeError, InvalidBill, MalformedReference, SchemaMismatch
from fairshare.logging import get_logger
from fairshare.models import Apportionment, Bill, ExtraFee, Item

VERSION = "b1"
SEPARATOR = "_"

log = get_logger(__name__)


class _WireItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str
    total_price: Decimal = Field(alias="price", ge=0, allow_inf_nan=False)
    quantity: int = Field(ge=1, strict=True)


class _WireFee(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str
    amount: Decimal = Field(ge=0, allow_inf_nan=False)
    apportionment: Apportionment = Field(alias="type")
    expected_headcount: Optional[int] = Field(None, alias="expectedCount", ge=1, strict=True)


class _WireBill(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    items: List[_WireItem]
    extra_fees: List[_WireFee] = Field(alias="extraFees")


def _to_wire(bill: Bill) -> dict[str, Any]:
    wire = _WireBill(
        items=[
            _WireItem(id=item.id, name=item.name, total_price=item.total_price, quantity=item.quantity)
            for item in bill.items
        ],
        extra_fees=[
            _WireFee(
                id=fee.id,
                name=fee.name,
                amount=fee.amount,
                apportionment=fee.apportionment,
                expected_headcount=fee.expected_headcount,
            )
            for fee in bill.fees
        ],
    )
    return wire.model_dump(mode="json", by_alias=True, exclude_none=True)


def _from_wire(data: Any) -> Bill:
    try:
        wire = _WireBill.model_validate(data)
    except ValidationError as exc:
        raise SchemaMismatch(f"bill does not match schema: {exc.error_count()} error(s)") from exc

    try:
        return Bill(
            items=tuple(
                Item(id=item.id, name=item.name, total_price=item.total_price, quantity=item.quantity)
                for item in wire.items
            ),
            fees=tuple(
                ExtraFee(
                    id=fee.id,
                    name=fee.name,
                    amount=fee.amount,
                    apportionment=fee.apportionment,
                    expected_headcount=fee.expected_headcount,
                )
                for fee in wire.extra_fees
            ),
        )
    except InvalidBill as exc:
        raise SchemaMismatch(str(exc)) from exc


def _loads(raw: str | bytes) -> Any:
    try:
        data = json.loads(raw, parse_float=Decimal)
    except (ValueError, RecursionError) as exc:
        raise MalformedReference("reference does not contain valid JSON") from exc
    if not isinstance(data, dict):
        raise MalformedReference("reference does not contain a JSON object")
    return data


def _decode_versioned(payload: str) -> Any:
    padded = payload + "=" * (-len(payload) % 4)
    try:
        compressed = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise MalformedReference("reference is not valid base64") from exc
    try:
        raw = zlib.decompress(compressed)
    except zlib.error as exc:
        raise MalformedReference("reference payload is truncated or corrupt") from exc
    return _loads(raw)


def _decode_legacy(reference: str) -> Any:
    text = unquote(reference, errors="strict") if "%" in reference else reference
    return _loads(text)


def encode(bill: Bill) -> str:
    raw = json.dumps(_to_wire(bill), separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    payload = base64.urlsafe_b64encode(zlib.compress(raw, 9)).rstrip(b"=").decode("ascii")
    return f"{VERSION}{SEPARATOR}{payload}"


def decode(reference: str) -> Bill:
    """Rebuild a bill from ``reference``; raises MalformedReference or SchemaMismatch."""
    try:
        return _decode(reference)
    except DecodeError as exc:
        log.warning("codec.decode.failed", reason=exc.reason.value, error=str(exc))
        raise


def _decode(reference: str) -> Bill:
    if not isinstance(reference, str) or not reference.strip():
        raise MalformedReference("reference is empty")
    reference = reference.strip()

    if reference.startswith("{") or reference[:3].upper() == "%7B":
        try:
            data = _decode_legacy(reference)
        except UnicodeDecodeError as exc:
            raise MalformedReference("reference is not valid UTF-8") from exc
        return _from_wire(data)

    version, sep, payload = reference.partition(SEPARATOR)
    if not sep or version != VERSION:
        raise MalformedReference(f"unsupported reference format: {version[:8]!r}")
    if not payload:
        raise MalformedReference("reference payload is empty")
    return _from_wire(_decode_versioned(payload))


def share_url(reference: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/calculate/{reference}"
