"""
Central configuration for the GeoDescribe service.

Values come from environment variables (optionally loaded from a local
.env file) with defaults suitable for a single-machine field deployment.
Anything tests need to vary per-case (API key, model names) is read at
call time through the helpers below rather than frozen at import.
"""

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def as_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse common truthy strings to bool."""
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def as_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


def as_list(value: Optional[str]) -> list[str]:
    """Split a comma-separated env value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


# --- Server ----------------------------------------------------------------
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
STATIC_DIR = os.getenv("STATIC_DIR", "static")
# Browser clients send base64 photos; they downscale to ~1024px first.
MAX_BODY_MB = as_float(os.getenv("MAX_BODY_MB"), 8.0)

# --- Database --------------------------------------------------------------
DATABASE_ENABLED = as_bool(os.getenv("ENABLE_DB", "1"), default=True)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./geodescribe.db")

# --- Photos ----------------------------------------------------------------
PHOTO_MAX_DIM = 1024
PHOTO_JPEG_QUALITY = 85

# --- OpenAI ----------------------------------------------------------------
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_FALLBACK_MODELS = ["gpt-4o"]
DEFAULT_TEMPERATURE = 0.15


def openai_api_key() -> Optional[str]:
    return os.getenv("OPENAI_API_KEY") or None


def openai_base_url() -> str:
    return os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")


def openai_models() -> list[str]:
    """Ordered candidate models: OPENAI_MODEL first, then the fallbacks."""
    primary = os.getenv("OPENAI_MODEL") or DEFAULT_MODEL
    fallbacks = as_list(os.getenv("OPENAI_FALLBACK_MODELS")) or DEFAULT_FALLBACK_MODELS
    ordered = [primary]
    for name in fallbacks:
        if name not in ordered:
            ordered.append(name)
    return ordered


def openai_temperature() -> float:
    return as_float(os.getenv("OPENAI_TEMPERATURE"), DEFAULT_TEMPERATURE)
