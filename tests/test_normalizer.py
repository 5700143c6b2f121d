"""Tests for the extraction normalizer"""
from faturascan.models import ExtractedFields, LineItem
from faturascan.normalizer import normalize_extracted, normalize_item


def test_normalize_full_receipt(sample_extraction_raw):
    """Test normalization of a typical Turkish receipt"""
    fields = normalize_extracted(sample_extraction_raw)

    assert fields.date == "2024-06-01"
    assert fields.amount == 4499.0
    assert fields.vendor == "BİM BİRLEŞİK MAĞAZALAR A.Ş."
    assert fields.invoiceNumber == "FTR2024000123"
    assert fields.taxAmount == 749.83
    assert len(fields.items) == 2
    assert fields.items[0].quantity == 1
    assert fields.items[0].totalPrice == 32.5
    assert fields.items[0].unitPrice is None
    assert fields.items[1].quantity == 2


def test_normalize_keeps_zero_amount():
    """Test that a present zero is kept and absence is omitted"""
    fields = normalize_extracted({"amount": 0, "taxAmount": None})

    assert fields.amount == 0.0
    assert fields.taxAmount is None


def test_normalize_malformed_fields_become_absent():
    """Test malformed values degrade to absent without failing"""
    fields = normalize_extracted({
        "date": "not a date",
        "amount": "lots",
        "vendor": "   ",
        "invoiceNumber": {"nested": True},
        "items": "not a list",
    })

    assert fields == ExtractedFields()


def test_normalize_none_and_non_mapping():
    """Test that empty or non-mapping input yields empty fields"""
    assert normalize_extracted(None) == ExtractedFields()
    assert normalize_extracted(["date", "2024-01-01"]) == ExtractedFields()


def test_normalize_item_discards_empty_items():
    """Test items with neither description nor totalPrice are dropped"""
    assert normalize_item({"quantity": 2, "unitPrice": 5}) is None
    assert normalize_item({"description": "  ", "totalPrice": None}) is None
    assert normalize_item("Ekmek") is None


def test_normalize_item_keeps_zero_total():
    """Test an item with only a zero totalPrice survives"""
    item = normalize_item({"totalPrice": 0})

    assert item == LineItem(description=None, quantity=1, unitPrice=None, totalPrice=0.0)


def test_normalize_item_unparseable_quantity_defaults_to_one():
    """Test quantity falls back to 1 when it cannot be parsed"""
    item = normalize_item({"description": "KDV %20", "quantity": "%20", "totalPrice": "12,00"})

    assert item.quantity == 1
    assert item.totalPrice == 12.0


def test_normalize_is_idempotent(sample_extraction_raw):
    """Test normalizing already-normalized output changes nothing"""
    once = normalize_extracted(sample_extraction_raw)

    assert normalize_extracted(once.model_dump()) == once
    assert normalize_extracted(once) == once


def test_normalize_oversized_amounts_become_absent():
    """Test amounts too large for a float degrade to absent and stay that way"""
    raw = {
        "date": "2024-06-01",
        "amount": 10 ** 400,
        "vendor": "Acme Corp",
        "taxAmount": "1" * 400,
        "items": [{"description": "Kalem", "quantity": 10 ** 400, "totalPrice": 5}],
    }

    fields = normalize_extracted(raw)

    assert fields.amount is None
    assert fields.taxAmount is None
    assert fields.items[0].quantity == 1
    assert fields.missing_required() == ["Amount"]
    assert normalize_extracted(fields.model_dump()) == fields
