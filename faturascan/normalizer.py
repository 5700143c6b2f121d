"""Single normalization pass over raw AI extraction output"""
from typing import Any, List, Mapping, Optional

from .models import ExtractedFields, LineItem
from .parsing import parse_amount, parse_date


def _clean_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def normalize_item(raw: Any) -> Optional[LineItem]:
    """Normalize one line item; returns None if it should be discarded"""
    if isinstance(raw, LineItem):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        return None

    description = _clean_text(raw.get("description"))
    total_price = parse_amount(raw.get("totalPrice"))
    if description is None and total_price is None:
        return None

    quantity = parse_amount(raw.get("quantity"))
    return LineItem(
        description=description,
        quantity=1 if quantity is None else quantity,
        unitPrice=parse_amount(raw.get("unitPrice")),
        totalPrice=total_price,
    )


def normalize_extracted(raw: Optional[Mapping[str, Any]]) -> ExtractedFields:
    """
    Coerce loosely-typed AI output into ExtractedFields.

    Malformed individual fields become absent instead of failing the whole
    extraction. A present zero is kept; only missing or unparseable values
    are dropped. Running this on its own output returns an equal value.
    """
    if isinstance(raw, ExtractedFields):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        return ExtractedFields()

    raw_items = raw.get("items")
    items: List[LineItem] = []
    if isinstance(raw_items, list):
        for raw_item in raw_items:
            item = normalize_item(raw_item)
            if item is not None:
                items.append(item)

    return ExtractedFields(
        date=parse_date(raw.get("date")),
        amount=parse_amount(raw.get("amount")),
        vendor=_clean_text(raw.get("vendor")),
        invoiceNumber=_clean_text(raw.get("invoiceNumber")),
        taxAmount=parse_amount(raw.get("taxAmount")),
        items=items,
    )
