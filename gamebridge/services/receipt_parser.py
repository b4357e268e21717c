"""
Receipt Parser - Turns the client's receipt string into a Receipt.

The Unity IAP receipt is a JSON envelope:

    {"Store": "GooglePlay", "TransactionID": "...",
     "Payload": "{\\"json\\": \\"{...receipt...}\\", \\"signature\\": \\"...\\"}"}

The envelope is unwrapped structurally. Older clients send strings that were
escaped one time too many and no longer parse; for those the legacy slicing
between the ``orderId`` and ``signature`` markers is kept for compatibility.
"""

import json
from typing import Any

from structlog import get_logger

from gamebridge.exceptions import ReceiptFormatError
from gamebridge.models.domain import Receipt

logger = get_logger(__name__)

ORDER_ID_MARKER = "orderId"
SIGNATURE_MARKER = "signature"


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def unwrap_envelope(raw: str) -> dict[str, Any] | None:
    """
    Extract the receipt object from a well-formed payload.

    Accepts the Unity IAP envelope, the inner ``{"json", "signature"}``
    object, or a bare receipt object. Returns None when the payload is not
    one of these.
    """
    outer = _loads_object(raw)
    if outer is None:
        return None
    if "purchaseToken" in outer:
        return outer

    payload: Any = outer.get("Payload", outer)
    if isinstance(payload, str):
        payload = _loads_object(payload)
    if not isinstance(payload, dict):
        return None

    inner = payload.get("json")
    if isinstance(inner, str):
        inner = _loads_object(inner)
    return inner if isinstance(inner, dict) else None


def extract_legacy_receipt_json(raw: str) -> str:
    """
    Legacy extraction for over-escaped payloads.

    Strips every backslash, then slices from two characters before the first
    ``orderId`` (the opening ``{"``) up to three characters before the first
    ``signature`` (dropping the ``","`` separator).
    """
    cleaned = raw.replace("\\", "")
    order_at = cleaned.find(ORDER_ID_MARKER)
    signature_at = cleaned.find(SIGNATURE_MARKER)
    if order_at == -1 or signature_at == -1:
        raise ReceiptFormatError("Receipt payload is missing orderId or signature")

    start = order_at - 2
    end = signature_at - 3
    if start < 0 or end <= start:
        raise ReceiptFormatError("Receipt payload markers are out of order")
    return cleaned[start:end]


def parse_receipt(raw: str) -> Receipt:
    """
    Parse a client receipt string.

    Raises:
        ReceiptFormatError: If no receipt object can be recovered
    """
    data = unwrap_envelope(raw)
    source = "envelope"
    if data is None:
        source = "legacy"
        data = _loads_object(extract_legacy_receipt_json(raw))
        if data is None:
            raise ReceiptFormatError("Receipt payload is not valid JSON")

    try:
        receipt = Receipt.from_fields(data)
    except ValueError as exc:
        raise ReceiptFormatError(str(exc)) from exc

    logger.debug(
        "receipt_parsed",
        source=source,
        product_id=receipt.product_id,
        kind=receipt.kind.value,
    )
    return receipt
