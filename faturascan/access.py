"""Ownership and role checks for invoices and user profiles"""
import duckdb

from .database import get_user_profile
from .models import InvoiceRecord, UserRole


class AccessDeniedError(Exception):
    """Raised when the acting user may not touch a resource"""


def is_admin(conn: duckdb.DuckDBPyConnection, uid: str) -> bool:
    profile = get_user_profile(conn, uid)
    return profile is not None and profile.role == UserRole.ADMIN


def can_access_invoice(conn: duckdb.DuckDBPyConnection, uid: str, invoice: InvoiceRecord) -> bool:
    """Owners see their own invoices; admins see everything"""
    return invoice.userId == uid or is_admin(conn, uid)


def check_invoice_access(conn: duckdb.DuckDBPyConnection, uid: str, invoice: InvoiceRecord) -> None:
    if not can_access_invoice(conn, uid, invoice):
        raise AccessDeniedError("You do not have access to this invoice.")


def check_admin(conn: duckdb.DuckDBPyConnection, uid: str) -> None:
    if not is_admin(conn, uid):
        raise AccessDeniedError("Administrator role required.")
