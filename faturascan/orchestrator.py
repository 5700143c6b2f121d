"""Upload processing: AI extraction, normalization and validation in one request"""
import logging
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, ValidationError, field_validator

from .extraction import extract_invoice_data, validate_with_ai
from .models import AIVerdict, ProcessResult, format_validation_errors
from .normalizer import normalize_extracted
from .validator import merge_verdicts, validate_fields

logger = logging.getLogger(__name__)

IMAGE_URI_PREFIX = "data:image/"

EXTRACTION_FAILED_MESSAGE = "AI extraction failed completely. Please try again with a clearer image."
MISSING_FIELDS_MESSAGE = (
    "AI could not extract all required fields: {fields}. Please check the image or try again."
)
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred during AI processing."

Extractor = Callable[[str], Awaitable[Optional[Dict[str, Any]]]]
AIValidator = Callable[[str, float, str], Awaitable[Optional[Dict[str, Any]]]]


class UploadInput(BaseModel):
    photoDataUri: str

    @field_validator("photoDataUri")
    @classmethod
    def _must_be_image_uri(cls, v: str) -> str:
        if not v.startswith(IMAGE_URI_PREFIX):
            raise ValueError(f"Invalid image data URI; expected a '{IMAGE_URI_PREFIX}' prefix")
        return v


async def process_upload(
    image_data: Any,
    extractor: Optional[Extractor] = None,
    ai_validator: Optional[AIValidator] = None,
    today: Optional[date] = None,
) -> ProcessResult:
    """
    Extract and validate one invoice image.

    Never raises. Input errors are reported before any AI call. If the
    canonical fields are incomplete the partial extraction is still returned
    so the reviewer can see what was found.
    """
    try:
        upload = UploadInput(photoDataUri=image_data)
    except ValidationError as e:
        return ProcessResult(error=format_validation_errors(e))

    extractor = extractor or extract_invoice_data
    ai_validator = ai_validator or validate_with_ai

    try:
        raw = await extractor(upload.photoDataUri)
        if not raw:
            logger.warning("Extraction returned no result")
            return ProcessResult(error=EXTRACTION_FAILED_MESSAGE)

        fields = normalize_extracted(raw)
        missing = fields.missing_required()
        if missing:
            return ProcessResult(
                extractedFields=fields,
                error=MISSING_FIELDS_MESSAGE.format(fields=", ".join(missing)),
            )

        ai_raw = await ai_validator(fields.date, fields.amount, fields.vendor)
        baseline = validate_fields(fields.date, fields.amount, fields.vendor, today=today)
        verdict = merge_verdicts(AIVerdict.from_response(ai_raw), baseline)

        return ProcessResult(extractedFields=fields, verdict=verdict)
    except Exception as e:
        logger.exception("Error processing invoice")
        return ProcessResult(error=str(e) or UNEXPECTED_ERROR_MESSAGE)
