"""Configuration constants for the Simplify Notes (SN) module."""

from dataclasses import dataclass
import logging
import os


@dataclass(frozen=True)
class DispatchConfig:
    max_retries: int
    rate_limit_backoff: float
    provider_error_backoff: float
    max_requeues: int


GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
DEFAULT_MODEL = os.getenv("SN_MODEL", "llama3-8b-8192")
TEMPERATURE = 0.3
MAX_TOKENS = 4000

REQUEST_TIMEOUT = float(os.getenv("SN_REQUEST_TIMEOUT", "120"))

API_KEY_ENV_VARS = [f"GROQ_API_KEY_{n}" for n in range(1, 11)]
PLACEHOLDER_KEY = "your_actual_groq_api_key_here"

DEFAULT_CHUNK_SIZE = int(os.getenv("SN_MAX_CHUNK_SIZE", "3000"))
RESULT_SEPARATOR = "\n\n"
DOCUMENT_MARKER = "\n\n=== {name} ===\n\n"

DEFAULT_DISPATCH = DispatchConfig(
    max_retries=3,
    rate_limit_backoff=2.0,
    provider_error_backoff=1.0,
    max_requeues=int(os.getenv("SN_MAX_REQUEUES", "5")),
)

ALLOWED_EXTENSIONS = {"pdf", "docx", "pptx", "txt"}
MAX_CONTENT_LENGTH = 100 * 1024 * 1024

# Uploaded jobs never started within this many seconds are discarded.
UPLOAD_TTL = int(os.getenv("SN_UPLOAD_TTL", "3600"))

# Overall job progress: extraction, preparation, dispatch, output.
PROGRESS_EXTRACT_END = 30
PROGRESS_CHUNK_END = 35
PROGRESS_DISPATCH_SPAN = 60
PROGRESS_RENDER_START = 95

EXPORT_HEADERS = ["Chunk", "Original", "Simplified"]


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(levelname)s] %(name)s - %(message)s",
    )
