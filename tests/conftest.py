"""Pytest configuration and fixtures"""
import base64
from datetime import date

import pytest

from faturascan.database import init_database


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database for testing"""
    conn = init_database(tmp_path / "test_invoices.duckdb")
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def today():
    """Fixed reference day for date-window checks"""
    return date(2024, 6, 15)


@pytest.fixture
def sample_image_bytes():
    """Create a minimal PNG image for testing"""
    # Minimal valid PNG (1x1 transparent pixel)
    png_content = (
        b'\x89PNG\r\n\x1a\n'
        b'\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00'
        b'\x1f\x15\xc4\x89\x00\x00\x00\nIDATx\x9cc\x00\x01\x00\x00\x05\x00\x01'
        b'\r\n-\xdb\x00\x00\x00\x00IEND\xaeB`\x82'
    )
    return png_content


@pytest.fixture
def sample_data_uri(sample_image_bytes):
    return "data:image/png;base64," + base64.b64encode(sample_image_bytes).decode("utf-8")


@pytest.fixture
def sample_extraction_raw():
    """Raw model output for a typical Turkish receipt"""
    return {
        "date": "01.06.2024",
        "amount": "4.499,00 TL",
        "vendor": "  BİM BİRLEŞİK MAĞAZALAR A.Ş. ",
        "invoiceNumber": "FTR2024000123",
        "taxAmount": 749.83,
        "items": [
            {"description": "Süt 1L", "quantity": None, "totalPrice": "32,50"},
            {"description": "Ekmek", "quantity": 2, "unitPrice": 10, "totalPrice": 20},
            {"quantity": 3},
        ],
    }


@pytest.fixture
def sample_invoice_payload():
    """Reviewed invoice as sent by the UI on save"""
    return {
        "date": "2024-06-01",
        "amount": 150.0,
        "vendor": "Acme Corp",
        "invoiceNumber": "INV-2024-001",
        "taxAmount": 25.0,
        "items": [
            {
                "description": "Consulting",
                "quantity": 1.0,
                "unitPrice": 125.0,
                "totalPrice": 125.0
            }
        ],
        "category": "gider",
        "validationSummary": "The extracted data appears to be valid.",
        "isDateValid": True,
        "isAmountValid": True,
        "isVendorValid": True,
        "isSuspicious": False,
        "suspiciousReasons": [],
        "imageFileName": "receipt.png"
    }
