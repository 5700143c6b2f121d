"""Environment-driven settings"""
import os
from pathlib import Path


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "qwen3-vl")

# Try the local Ollama model before Gemini
PREFER_LOCAL = _env_flag("FATURASCAN_PREFER_LOCAL", True)

DB_PATH = Path(os.getenv("FATURASCAN_DB_PATH", "invoices.duckdb"))

# Upper bound for a plausible invoice total, in the invoice's currency unit
MAX_AMOUNT = float(os.getenv("FATURASCAN_MAX_AMOUNT", "1000000"))
MIN_VENDOR_LENGTH = 2
DATE_WINDOW_YEARS = 2

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

LOG_LEVEL = os.getenv("FATURASCAN_LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "FATURASCAN_CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://localhost:9002",
    ).split(",")
    if origin.strip()
]
