"""LLM calls for invoice extraction and validation with Ollama + Gemini fallback"""
import base64
import io
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import ollama
from google import genai
from PIL import Image

from .config import GEMINI_API_KEY, GEMINI_MODEL, OLLAMA_MODEL, PREFER_LOCAL

logger = logging.getLogger(__name__)


EXTRACTION_PROMPT = """
You are an accounting assistant reading a photo of an invoice, receipt or
"Bilgi Fişi" (information slip). Most documents are Turkish.
Extract the fields below and return a strictly formatted JSON object.
If a field is ambiguous or missing, omit it instead of guessing.

The JSON structure must be as follows:
{
  "vendor": "string (issuing company, usually at the top, e.g. BİM BİRLEŞİK MAĞAZALAR A.Ş.)",
  "date": "YYYY-MM-DD",
  "amount": number,
  "invoiceNumber": "string",
  "taxAmount": number,
  "items": [
    {
      "description": "string",
      "quantity": number,
      "unitPrice": number,
      "totalPrice": number
    }
  ]
}

Rules:
1. date: convert DD.MM.YYYY or "3 Temmuz 2030" style dates to YYYY-MM-DD.
2. amount: the grand total, labelled TOPLAM, GENEL TOPLAM, ÖDENECEK TUTAR or FATURA TOPLAMI.
3. invoiceNumber: prefer the value labelled FATURA NO over "NO:", "Fiş No:" or ETTN.
4. taxAmount: the total tax (TOPKDV, KDV TOPLAMI, Toplam Vergi). Prefer an explicitly
   listed amount; compute it only when just a rate and a subtotal are given.
5. items: if quantity is not stated assume 1. A value like "%20" next to an item is a
   VAT rate, not a quantity. A receipt's item price is usually its totalPrice.
6. Monetary values must be numbers, not strings: "4,499.00 TL" becomes 4499.00.
7. Output ONLY the valid JSON string. Do not include markdown formatting like ```json.
"""


VALIDATION_PROMPT = """
You are an expert validator for financial data extracted from invoices and receipts.

Extracted data:
Date: {date}
Amount: {amount}
Vendor: {vendor}

Validate it against common sense business rules:
- The date should be in the past, but not more than 2 years ago.
- The amount should be a reasonable value for a typical business transaction.
- The vendor name should look like a real business name, not gibberish.

Return a JSON object of this shape:
{{
  "validationResult": {{
    "isDateValid": boolean,
    "isAmountValid": boolean,
    "isVendorValid": boolean,
    "suspicious": boolean,
    "reasons": ["string"]
  }},
  "summary": "string (one sentence)"
}}

Output ONLY the valid JSON string. Do not include markdown formatting like ```json.
"""


_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


def split_data_uri(data_uri: str) -> Tuple[str, str]:
    """Split a base64 data URI into (mime type, base64 payload)"""
    match = _DATA_URI.match(data_uri or "")
    if not match:
        raise ValueError("Invalid image data URI")
    return match.group("mime"), match.group("data")


def calculate_confidence(extracted_data: Dict[str, Any]) -> float:
    """Calculate confidence score based on required fields"""
    required_fields = ["date", "amount", "vendor"]
    present_fields = sum(
        1 for field in required_fields if extracted_data.get(field) not in (None, "")
    )

    base_score = present_fields / len(required_fields)

    # Bonus for having line items
    if extracted_data.get("items"):
        base_score += 0.1

    # Bonus for having invoice number
    if extracted_data.get("invoiceNumber"):
        base_score += 0.1

    return min(base_score, 1.0)


def parse_json_response(text: str) -> Dict[str, Any]:
    """Parse JSON from LLM response, handling markdown code blocks"""
    # Remove markdown code blocks if present
    if "```" in text:
        text = text.replace("```json", "").replace("```", "")

    # Find JSON object bounds
    first_brace = text.find("{")
    last_brace = text.rfind("}")

    if first_brace != -1 and last_brace != -1:
        text = text[first_brace:last_brace + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON response: {e}")
    if not isinstance(data, dict):
        raise ValueError("Failed to parse JSON response: expected an object")
    return data


async def ollama_extract(images: List[str], prompt: str = EXTRACTION_PROMPT) -> Dict[str, Any]:
    """Run a prompt against the local Ollama model; images are bare base64 strings"""
    try:
        message = {"role": "user", "content": prompt}
        if images:
            message["images"] = images[:1]

        response = ollama.chat(model=OLLAMA_MODEL, messages=[message], format="json")

        text = response["message"]["content"]
        extracted = parse_json_response(text)

        return {
            "data": extracted,
            "confidence": calculate_confidence(extracted),
            "provider": "ollama"
        }
    except Exception as e:
        # Check if it's a model not found error
        if "not found" in str(e).lower():
            raise ValueError(
                f"Ollama model '{OLLAMA_MODEL}' not found. Please run: ollama pull {OLLAMA_MODEL}"
            )
        raise ValueError(f"Ollama extraction failed: {e}")


async def gemini_extract(images: List[str], prompt: str = EXTRACTION_PROMPT) -> Dict[str, Any]:
    """Run a prompt against the Gemini API"""
    if not GEMINI_API_KEY:
        raise ValueError("GEMINI_API_KEY not set")

    try:
        client = genai.Client(api_key=GEMINI_API_KEY)

        # Gemini takes PIL images alongside the prompt text
        contents: List[Any] = [prompt]
        for img_base64 in images:
            img_bytes = base64.b64decode(img_base64)
            contents.append(Image.open(io.BytesIO(img_bytes)))

        response = client.models.generate_content(
            model=GEMINI_MODEL,
            contents=contents,
            config={"response_mime_type": "application/json"},
        )

        text = response.text
        if not text:
            raise ValueError("No response from Gemini")

        extracted = parse_json_response(text)

        return {
            "data": extracted,
            "confidence": calculate_confidence(extracted),
            "provider": "gemini"
        }
    except Exception as e:
        raise ValueError(f"Gemini extraction failed: {e}")


async def _generate(
    images: List[str],
    prompt: str,
    prefer_local: bool,
    good_enough: Callable[[Dict[str, Any]], bool],
) -> Dict[str, Any]:
    # Try local Ollama first if preferred
    if prefer_local:
        try:
            result = await ollama_extract(images, prompt)
            if good_enough(result):
                return result
            logger.info("Ollama result not good enough, falling back to Gemini")
        except Exception as e:
            logger.warning("Ollama call failed, falling back to Gemini: %s", e)

    try:
        return await gemini_extract(images, prompt)
    except Exception as e:
        raise ValueError(f"All extraction methods failed. Last error: {e}")


async def extract_invoice_data(
    photo_data_uri: str,
    prefer_local: Optional[bool] = None
) -> Optional[Dict[str, Any]]:
    """
    Extract raw invoice fields from an image data URI

    Args:
        photo_data_uri: 'data:<mimetype>;base64,<encoded_data>'
        prefer_local: Try Ollama first if True (defaults to FATURASCAN_PREFER_LOCAL)

    Returns:
        Raw field mapping as returned by the model, or None when it returned nothing
    """
    if prefer_local is None:
        prefer_local = PREFER_LOCAL

    _, payload = split_data_uri(photo_data_uri)
    result = await _generate(
        [payload],
        EXTRACTION_PROMPT,
        prefer_local,
        lambda r: r["confidence"] >= 0.8,
    )
    logger.info(
        "Extraction via %s (confidence %.2f)", result["provider"], result["confidence"]
    )
    return result["data"] or None


async def validate_with_ai(
    date: str,
    amount: float,
    vendor: str,
    prefer_local: Optional[bool] = None
) -> Optional[Dict[str, Any]]:
    """Ask the model for its own verdict on the canonical fields"""
    if prefer_local is None:
        prefer_local = PREFER_LOCAL

    prompt = VALIDATION_PROMPT.format(date=date, amount=amount, vendor=vendor)
    result = await _generate(
        [],
        prompt,
        prefer_local,
        lambda r: isinstance(r["data"].get("validationResult"), dict),
    )
    return result["data"] or None
