"""Error taxonomy shared by the codec, the builder and the selection state."""

from __future__ import annotations

from enum import Enum


class FairShareError(Exception):
    pass


class DecodeFailure(str, Enum):
    MALFORMED_REFERENCE = "malformed_reference"
    SCHEMA_MISMATCH = "schema_mismatch"


class DecodeError(FairShareError):
    """A shareable reference could not be turned back into a bill."""

    reason: DecodeFailure

    def __init__(self, message: str, reason: DecodeFailure | None = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class MalformedReference(DecodeError):
    reason = DecodeFailure.MALFORMED_REFERENCE


class SchemaMismatch(DecodeError):
    reason = DecodeFailure.SCHEMA_MISMATCH


class InvalidBill(FairShareError, ValueError):
    pass


class InvalidItem(InvalidBill):
    pass


class InvalidFee(InvalidBill):
    pass


class UnknownItem(FairShareError, LookupError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"unknown item: {item_id!r}")
        self.item_id = item_id


class ExtractionError(FairShareError):
    """The receipt extraction service failed or answered with an error."""
