"""Deterministic business rules for extracted invoice data and the AI verdict overlay"""
import logging
from datetime import date
from typing import Any, Callable, List, Optional, Tuple

from . import config
from .models import AIVerdict, ValidationVerdict
from .parsing import parse_date

logger = logging.getLogger(__name__)

REASON_MESSAGES = {
    "date": "The date is invalid (either in the future or too far in the past).",
    "amount": "The amount is invalid (either negative or unreasonably large).",
    "vendor": "The vendor name is invalid (too short).",
}
GENERIC_REASON = "The data was flagged as suspicious by the automated review."

SUSPICIOUS_SUMMARY_PREFIX = "The extracted data is suspicious."
VALID_SUMMARY = "The extracted data appears to be valid."


def years_before(day: date, years: int) -> date:
    """Same calendar day `years` earlier; Feb 29 falls back to Feb 28"""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


def is_date_valid(value: Any, today: Optional[date] = None) -> bool:
    today = today or date.today()
    iso = parse_date(value)
    if iso is None:
        return False
    parsed = date.fromisoformat(iso)
    return years_before(today, config.DATE_WINDOW_YEARS) <= parsed <= today


def is_amount_valid(value: Any, max_amount: Optional[float] = None) -> bool:
    if max_amount is None:
        max_amount = config.MAX_AMOUNT
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return 0 < value < max_amount


def is_vendor_valid(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return len(value.strip()) > config.MIN_VENDOR_LENGTH


def build_summary(suspicious: bool, reasons: List[str]) -> str:
    if suspicious:
        return f"{SUSPICIOUS_SUMMARY_PREFIX} Reasons: {', '.join(reasons)}"
    return VALID_SUMMARY


def _reasons_for(date_ok: bool, amount_ok: bool, vendor_ok: bool) -> List[str]:
    reasons = []
    if not date_ok:
        reasons.append(REASON_MESSAGES["date"])
    if not amount_ok:
        reasons.append(REASON_MESSAGES["amount"])
    if not vendor_ok:
        reasons.append(REASON_MESSAGES["vendor"])
    return reasons


def validate_fields(
    date_value: Any,
    amount: Any,
    vendor: Any,
    today: Optional[date] = None,
) -> ValidationVerdict:
    """
    Apply the baseline rules to the canonical fields.

    Args:
        date_value: Invoice date, ISO or any format parse_date accepts
        amount: Grand total
        vendor: Vendor name
        today: Reference day for the date window (defaults to today)

    Returns:
        ValidationVerdict with one reason per failing rule
    """
    date_ok = is_date_valid(date_value, today)
    amount_ok = is_amount_valid(amount)
    vendor_ok = is_vendor_valid(vendor)

    reasons = _reasons_for(date_ok, amount_ok, vendor_ok)
    suspicious = not (date_ok and amount_ok and vendor_ok)

    return ValidationVerdict(
        isDateValid=date_ok,
        isAmountValid=amount_ok,
        isVendorValid=vendor_ok,
        isSuspicious=suspicious,
        reasons=reasons,
        summary=build_summary(suspicious, reasons),
    )


def _present(value: Any) -> bool:
    return value is not None


def _non_empty(value: Any) -> bool:
    return bool(value)


# Each verdict field with the check deciding whether the AI value is usable
MERGE_FIELDS: List[Tuple[str, Callable[[Any], bool]]] = [
    ("isDateValid", _present),
    ("isAmountValid", _present),
    ("isVendorValid", _present),
    ("isSuspicious", _present),
    ("reasons", _non_empty),
    ("summary", _present),
]


def merge_verdicts(ai: Optional[AIVerdict], baseline: ValidationVerdict) -> ValidationVerdict:
    """
    Overlay the AI verdict on the deterministic one, field by field.

    A non-empty reason list always makes the verdict suspicious, and a
    suspicious verdict always carries reasons. The summary is rebuilt from the
    final flags and reasons unless it comes from the AI and the AI flag stood.
    """
    if ai is None:
        return baseline

    merged = {}
    from_ai = set()
    for name, usable in MERGE_FIELDS:
        value = getattr(ai, name)
        if usable(value):
            merged[name] = value
            from_ai.add(name)
        else:
            merged[name] = getattr(baseline, name)

    if merged["reasons"] and not merged["isSuspicious"]:
        logger.info("Verdict has reasons but is not flagged; marking it suspicious")
        merged["isSuspicious"] = True
        # the AI summary describes the flag it gave, not the forced one
        from_ai.discard("summary")

    if merged["isSuspicious"] and not merged["reasons"]:
        merged["reasons"] = _reasons_for(
            merged["isDateValid"], merged["isAmountValid"], merged["isVendorValid"]
        ) or [GENERIC_REASON]

    if "summary" not in from_ai:
        merged["summary"] = build_summary(merged["isSuspicious"], merged["reasons"])

    return ValidationVerdict(**merged)
