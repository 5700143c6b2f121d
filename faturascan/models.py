"""Pydantic models shared by the API, the validator and the store"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import (
    BaseModel,
    StrictBool,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)


class Category(str, Enum):
    INCOME = "gelir"
    EXPENSE = "gider"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class SaveErrorCode(str, Enum):
    MISSING_IDENTITY = "missing_identity"
    STORE_UNAVAILABLE = "store_unavailable"
    INVALID_PAYLOAD = "invalid_payload"
    WRITE_FAILED = "write_failed"


class LineItem(BaseModel):
    description: Optional[str] = None
    quantity: float = 1
    unitPrice: Optional[float] = None
    totalPrice: Optional[float] = None


class ExtractedFields(BaseModel):
    """Normalized AI extraction output; every field is independently optional"""
    date: Optional[str] = None  # YYYY-MM-DD format
    amount: Optional[float] = None
    vendor: Optional[str] = None
    invoiceNumber: Optional[str] = None
    taxAmount: Optional[float] = None
    items: List[LineItem] = []

    def missing_required(self) -> List[str]:
        """Names of the canonical fields that are absent, in fixed order"""
        missing = []
        if not self.date:
            missing.append("Date")
        if self.amount is None:
            missing.append("Amount")
        if not self.vendor:
            missing.append("Vendor")
        return missing


class ValidationVerdict(BaseModel):
    isDateValid: bool
    isAmountValid: bool
    isVendorValid: bool
    isSuspicious: bool
    reasons: List[str] = []
    summary: str

    @model_validator(mode="after")
    def _suspicious_needs_reasons(self):
        if self.isSuspicious and not self.reasons:
            raise ValueError("a suspicious verdict must carry at least one reason")
        return self


class AIVerdict(BaseModel):
    """Best-effort verdict subset returned by the AI validation call"""
    isDateValid: Optional[bool] = None
    isAmountValid: Optional[bool] = None
    isVendorValid: Optional[bool] = None
    isSuspicious: Optional[bool] = None
    reasons: Optional[List[str]] = None
    summary: Optional[str] = None

    @classmethod
    def from_response(cls, raw: Optional[Mapping[str, Any]]) -> Optional["AIVerdict"]:
        """Build from the model's {"validationResult": {...}, "summary": ...} envelope.

        Flat responses are accepted too. Values of the wrong type are dropped
        rather than failing the whole verdict.
        """
        if not isinstance(raw, Mapping):
            return None

        result = raw.get("validationResult")
        if not isinstance(result, Mapping):
            result = raw

        fields: Dict[str, Any] = {}
        for key in ("isDateValid", "isAmountValid", "isVendorValid"):
            if isinstance(result.get(key), bool):
                fields[key] = result[key]

        suspicious = result.get("suspicious", result.get("isSuspicious"))
        if isinstance(suspicious, bool):
            fields["isSuspicious"] = suspicious

        reasons = result.get("reasons")
        if isinstance(reasons, list):
            fields["reasons"] = [str(r) for r in reasons if r]

        summary = raw.get("summary")
        if isinstance(summary, str) and summary.strip():
            fields["summary"] = summary.strip()

        return cls(**fields)


def _reject_non_numbers(value: Any) -> Any:
    if isinstance(value, (str, bool)):
        raise ValueError("must be a number")
    return value


class InvoiceItemInput(BaseModel):
    description: StrictStr
    quantity: float
    unitPrice: float
    totalPrice: float

    @field_validator("quantity", "unitPrice", "totalPrice", mode="before")
    @classmethod
    def _numbers(cls, v):
        return _reject_non_numbers(v)


class InvoiceInput(BaseModel):
    """Save-time contract for a reviewed invoice"""
    date: StrictStr
    amount: float
    vendor: StrictStr
    invoiceNumber: Optional[StrictStr] = None
    taxAmount: Optional[float] = None
    items: Optional[List[InvoiceItemInput]] = None
    category: Literal["gelir", "gider"]
    validationSummary: StrictStr
    isDateValid: StrictBool
    isAmountValid: StrictBool
    isVendorValid: StrictBool
    isSuspicious: StrictBool
    suspiciousReasons: List[StrictStr]
    imageFileName: Optional[StrictStr] = None

    @field_validator("amount", "taxAmount", mode="before")
    @classmethod
    def _numbers(cls, v):
        return _reject_non_numbers(v)

    @field_validator("vendor")
    @classmethod
    def _vendor_required(cls, v: str) -> str:
        if len(v) < 1:
            raise ValueError("Vendor name is required")
        return v


class InvoiceRecord(InvoiceInput):
    id: str
    userId: str
    createdAt: datetime
    updatedAt: datetime


class UserProfile(BaseModel):
    uid: str
    email: Optional[str] = None
    displayName: Optional[str] = None
    role: UserRole = UserRole.USER
    createdAt: datetime


class ProcessResult(BaseModel):
    extractedFields: Optional[ExtractedFields] = None
    verdict: Optional[ValidationVerdict] = None
    error: Optional[str] = None


class SaveResult(BaseModel):
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None
    errorCode: Optional[SaveErrorCode] = None


def format_validation_errors(exc: ValidationError) -> str:
    """Every failing field path with its message, in one string"""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
