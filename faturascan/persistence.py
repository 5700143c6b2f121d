"""Save path for reviewed invoices"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import duckdb
from pydantic import ValidationError

from .database import insert_invoice
from .models import InvoiceInput, SaveErrorCode, SaveResult, format_validation_errors
from .session import MissingIdentityError, resolve_acting_user

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = "Invoice store is unavailable."
SAVE_FAILED_MESSAGE = "Failed to save invoice."


def save_invoice(
    conn: Optional[duckdb.DuckDBPyConnection],
    record: Any,
    acting_user_id: Optional[str],
    now: Optional[datetime] = None
) -> SaveResult:
    """
    Validate a reviewed invoice and store it as a new record.

    Args:
        conn: Store connection, None when the store is not available
        record: Invoice payload as edited by the user
        acting_user_id: Identity passed by the caller from its own session
        now: Creation instant (defaults to the current UTC time)

    Returns:
        SaveResult with the new id, or an error and its errorCode. Any
        userId on the payload is ignored; the owner is always acting_user_id.
    """
    try:
        user_id = resolve_acting_user(acting_user_id)
    except MissingIdentityError as e:
        return SaveResult(success=False, error=str(e), errorCode=SaveErrorCode.MISSING_IDENTITY)

    if conn is None:
        return SaveResult(
            success=False,
            error=STORE_UNAVAILABLE_MESSAGE,
            errorCode=SaveErrorCode.STORE_UNAVAILABLE,
        )

    if not isinstance(record, Mapping):
        return SaveResult(
            success=False,
            error="Invoice payload must be an object",
            errorCode=SaveErrorCode.INVALID_PAYLOAD,
        )

    try:
        invoice = InvoiceInput.model_validate(dict(record))
    except ValidationError as e:
        return SaveResult(
            success=False,
            error=format_validation_errors(e),
            errorCode=SaveErrorCode.INVALID_PAYLOAD,
        )

    invoice_id = str(uuid.uuid4())
    try:
        insert_invoice(conn, invoice_id, user_id, invoice, now or datetime.now(timezone.utc))
    except Exception as e:
        logger.exception("Error saving invoice")
        return SaveResult(
            success=False,
            error=str(e) or SAVE_FAILED_MESSAGE,
            errorCode=SaveErrorCode.WRITE_FAILED,
        )

    logger.info("Saved invoice %s for user %s", invoice_id, user_id)
    return SaveResult(success=True, id=invoice_id)
