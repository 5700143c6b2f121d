"""Tests for Pydantic models"""
import pytest
from pydantic import ValidationError

from faturascan.models import (
    Category,
    ExtractedFields,
    InvoiceInput,
    LineItem,
    SaveErrorCode,
    UserRole,
    format_validation_errors
)


def test_category_enum():
    """Test Category enum"""
    assert Category.INCOME == "gelir"
    assert Category.EXPENSE == "gider"


def test_user_role_enum():
    """Test UserRole enum"""
    assert UserRole.USER == "user"
    assert UserRole.ADMIN == "admin"


def test_save_error_codes():
    """Test the save failure codes are distinct"""
    assert len({code.value for code in SaveErrorCode}) == 4


def test_line_item_defaults():
    """Test LineItem defaults quantity to 1"""
    item = LineItem(description="Test Item")

    assert item.quantity == 1
    assert item.unitPrice is None
    assert item.totalPrice is None


def test_extracted_fields_missing_required():
    """Test the canonical-field check"""
    assert ExtractedFields().missing_required() == ["Date", "Amount", "Vendor"]
    assert ExtractedFields(date="2024-01-01", amount=0, vendor="Acme").missing_required() == []
    assert ExtractedFields(date="2024-01-01", vendor="Acme").missing_required() == ["Amount"]


def test_invoice_input_accepts_int_amount(sample_invoice_payload):
    """Test integer amounts are numbers too"""
    invoice = InvoiceInput(**dict(sample_invoice_payload, amount=150))

    assert invoice.amount == 150


@pytest.mark.parametrize("field, value", [
    ("amount", "150"),
    ("amount", True),
    ("taxAmount", "25"),
    ("isDateValid", "true"),
    ("isSuspicious", 0),
    ("category", "expense"),
    ("suspiciousReasons", "none"),
    ("imageFileName", 5),
])
def test_invoice_input_rejects_wrong_types(sample_invoice_payload, field, value):
    """Test the save-time contract rejects coercible-but-wrong types"""
    with pytest.raises(ValidationError) as exc_info:
        InvoiceInput(**dict(sample_invoice_payload, **{field: value}))

    assert field in format_validation_errors(exc_info.value)
