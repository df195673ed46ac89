"""Client of the receipt extraction service.

The service takes one receipt photo and answers with proposed items and fees::

    {"items": [{"name", "quantity", "price"}],
     "extraFees": [{"name", "amount", "type"}]}

or ``{"error": "..."}``. How it reads the receipt is its own business.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fairshare.config import Settings, get_settings
from fairshare.errors import ExtractionError, InvalidFee, InvalidItem
from fairshare.logging import get_logger
from fairshare.models import Apportionment


# Counts are kept as Decimal until parse_quantity checks them in the draft.
class ExtractedItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    quantity: Optional[Decimal] = None
    price: Decimal


class ExtractedFee(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    amount: Decimal
    apportionment: Optional[Apportionment] = Field(None, alias="type")
    expected_headcount: Optional[Decimal] = Field(None, alias="expectedCount")


class ExtractionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    brand: Optional[str] = None
    items: List[ExtractedItem] = Field(default_factory=list)
    extra_fees: List[ExtractedFee] = Field(default_factory=list, alias="extraFees")


def parse_extraction_payload(payload: Any) -> ExtractionResult:
    if not isinstance(payload, dict):
        raise ExtractionError("extraction service returned an unexpected payload")
    if payload.get("error"):
        raise ExtractionError(str(payload["error"]))

    try:
        return ExtractionResult.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        message = f"{location}: {first['msg']}"
        if first["loc"] and first["loc"][0] == "extraFees":
            raise InvalidFee(message) from exc
        raise InvalidItem(message) from exc


class ExtractionClient:
    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport
        self._log = get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ExtractionClient | None:
        settings = settings or get_settings()
        if not settings.extraction_url:
            return None
        return cls(settings.extraction_url, timeout=settings.extraction_timeout)

    async def extract(self, image: bytes, filename: str = "receipt.jpg") -> ExtractionResult:
        self._log.info("extraction.request", size=len(image))
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, files={"image": (filename, image)})
        except httpx.HTTPError as exc:
            self._log.error("extraction.transport_error", error=str(exc))
            raise ExtractionError("extraction service is unavailable") from exc

        try:
            payload = json.loads(response.content, parse_float=Decimal)
        except ValueError as exc:
            self._log.error("extraction.bad_body", status=response.status_code)
            raise ExtractionError(f"extraction service returned a non-JSON body ({response.status_code})") from exc

        if response.is_error and not (isinstance(payload, dict) and payload.get("error")):
            raise ExtractionError(f"extraction service failed with status {response.status_code}")

        result = parse_extraction_payload(payload)
        self._log.info(
            "extraction.done",
            items=len(result.items),
            fees=len(result.extra_fees),
            brand=result.brand,
        )
        return result
