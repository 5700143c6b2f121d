"""DuckDB storage for invoices and user profiles"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple, Union

import duckdb

from . import config
from .models import InvoiceInput, InvoiceRecord, UserProfile, UserRole

logger = logging.getLogger(__name__)


INVOICE_COLUMNS = """
    id, user_id, date, amount, vendor, category, invoice_number, tax_amount,
    items, validation_summary, is_date_valid, is_amount_valid, is_vendor_valid,
    is_suspicious, suspicious_reasons, image_file_name, created_at, updated_at
"""

USER_COLUMNS = "uid, email, display_name, role, created_at"


def init_database(db_path: Union[str, Path, None] = None) -> duckdb.DuckDBPyConnection:
    """Initialize database and create tables if they don't exist"""
    conn = duckdb.connect(str(db_path or config.DB_PATH))

    conn.execute("""
        CREATE TABLE IF NOT EXISTS invoices (
            id VARCHAR PRIMARY KEY,
            user_id VARCHAR NOT NULL,
            date VARCHAR,
            amount DOUBLE,
            vendor VARCHAR NOT NULL,
            category VARCHAR NOT NULL,
            invoice_number VARCHAR,
            tax_amount DOUBLE,
            items JSON,
            validation_summary TEXT,
            is_date_valid BOOLEAN,
            is_amount_valid BOOLEAN,
            is_vendor_valid BOOLEAN,
            is_suspicious BOOLEAN,
            suspicious_reasons JSON,
            image_file_name VARCHAR,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS users (
            uid VARCHAR PRIMARY KEY,
            email VARCHAR,
            display_name VARCHAR,
            role VARCHAR NOT NULL,
            created_at TIMESTAMP NOT NULL
        )
    """)

    # Dashboard listing filters by owner
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_invoices_user_id ON invoices(user_id)
    """)

    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_invoices_created_at ON invoices(created_at)
    """)

    return conn


def _to_db_time(moment: datetime) -> datetime:
    # Stored as naive UTC
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def _from_db_time(moment: datetime) -> datetime:
    return moment.replace(tzinfo=timezone.utc)


def insert_invoice(
    conn: duckdb.DuckDBPyConnection,
    invoice_id: str,
    user_id: str,
    invoice: InvoiceInput,
    created_at: datetime
) -> str:
    """Insert one invoice; createdAt and updatedAt both get `created_at`"""
    stamp = _to_db_time(created_at)
    items = None
    if invoice.items is not None:
        items = json.dumps([item.model_dump() for item in invoice.items])

    conn.execute(f"""
        INSERT INTO invoices ({INVOICE_COLUMNS})
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, [
        invoice_id,
        user_id,
        invoice.date,
        invoice.amount,
        invoice.vendor,
        invoice.category,
        invoice.invoiceNumber,
        invoice.taxAmount,
        items,
        invoice.validationSummary,
        invoice.isDateValid,
        invoice.isAmountValid,
        invoice.isVendorValid,
        invoice.isSuspicious,
        json.dumps(invoice.suspiciousReasons),
        invoice.imageFileName,
        stamp,
        stamp,
    ])

    return invoice_id


def _row_to_invoice(row: tuple) -> InvoiceRecord:
    return InvoiceRecord(
        id=row[0],
        userId=row[1],
        date=row[2],
        amount=row[3],
        vendor=row[4],
        category=row[5],
        invoiceNumber=row[6],
        taxAmount=row[7],
        items=json.loads(row[8]) if row[8] is not None else None,
        validationSummary=row[9] or "",
        isDateValid=bool(row[10]),
        isAmountValid=bool(row[11]),
        isVendorValid=bool(row[12]),
        isSuspicious=bool(row[13]),
        suspiciousReasons=json.loads(row[14]) if row[14] is not None else [],
        imageFileName=row[15],
        createdAt=_from_db_time(row[16]),
        updatedAt=_from_db_time(row[17]),
    )


def get_invoice(conn: duckdb.DuckDBPyConnection, invoice_id: str) -> Optional[InvoiceRecord]:
    """Get invoice by ID"""
    row = conn.execute(f"""
        SELECT {INVOICE_COLUMNS} FROM invoices WHERE id = ?
    """, [invoice_id]).fetchone()

    if not row:
        return None
    return _row_to_invoice(row)


def list_invoices(
    conn: duckdb.DuckDBPyConnection,
    user_id: str,
    offset: int = 0,
    limit: int = 100
) -> Tuple[List[InvoiceRecord], int]:
    """List one user's invoices, newest first, with the total count"""
    count_result = conn.execute("""
        SELECT COUNT(*) FROM invoices WHERE user_id = ?
    """, [user_id]).fetchone()
    total = count_result[0] if count_result else 0

    rows = conn.execute(f"""
        SELECT {INVOICE_COLUMNS}
        FROM invoices
        WHERE user_id = ?
        ORDER BY created_at DESC, id
        LIMIT ? OFFSET ?
    """, [user_id, limit, offset]).fetchall()

    return [_row_to_invoice(row) for row in rows], total


def _row_to_user(row: tuple) -> UserProfile:
    return UserProfile(
        uid=row[0],
        email=row[1],
        displayName=row[2],
        role=row[3],
        createdAt=_from_db_time(row[4]),
    )


def get_user_profile(conn: duckdb.DuckDBPyConnection, uid: str) -> Optional[UserProfile]:
    row = conn.execute(f"""
        SELECT {USER_COLUMNS} FROM users WHERE uid = ?
    """, [uid]).fetchone()

    if not row:
        return None
    return _row_to_user(row)


def ensure_user_profile(
    conn: duckdb.DuckDBPyConnection,
    uid: str,
    email: Optional[str] = None,
    display_name: Optional[str] = None,
    now: Optional[datetime] = None
) -> UserProfile:
    """
    Return the user's profile, creating it on first access.

    New profiles always get the standard role; an existing profile is
    returned unchanged, also when a concurrent request created it first.
    """
    existing = get_user_profile(conn, uid)
    if existing:
        return existing

    created_at = now or datetime.now(timezone.utc)
    conn.execute(f"""
        INSERT INTO users ({USER_COLUMNS}) VALUES (?, ?, ?, ?, ?)
        ON CONFLICT (uid) DO NOTHING
    """, [uid, email, display_name, UserRole.USER.value, _to_db_time(created_at)])
    logger.info("Profile ensured for user %s", uid)

    return get_user_profile(conn, uid)


def list_users(conn: duckdb.DuckDBPyConnection) -> List[UserProfile]:
    """All profiles, newest first"""
    rows = conn.execute(f"""
        SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC, uid
    """).fetchall()
    return [_row_to_user(row) for row in rows]


def set_user_role(
    conn: duckdb.DuckDBPyConnection,
    uid: str,
    role: UserRole
) -> Optional[UserProfile]:
    """Change a profile's role; returns None if the profile does not exist"""
    if not get_user_profile(conn, uid):
        return None

    conn.execute("""
        UPDATE users SET role = ? WHERE uid = ?
    """, [UserRole(role).value, uid])
    return get_user_profile(conn, uid)
