"""Error taxonomy for SN simplification runs.

Only ``NoCredentialsError`` and ``IncompleteProcessingError`` ever reach the
caller of a run; the rest are raised by the request executor and absorbed by
the dispatcher's retry and requeue policy.
"""

from __future__ import annotations

from typing import Iterable, Optional


class SimplifyError(Exception):
    code = "SIMPLIFY_ERROR"


class NoCredentialsError(SimplifyError):
    code = "NO_CREDENTIALS"

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "No valid Groq API keys configured. Please add your API keys to the "
            ".env file (GROQ_API_KEY_1 through GROQ_API_KEY_10)."
        )


class IncompleteProcessingError(SimplifyError):
    code = "INCOMPLETE_PROCESSING"

    def __init__(self, missing: Iterable[int], message: str | None = None):
        self.missing = sorted(missing)
        super().__init__(message or "Some chunks failed to process. Please try again.")


class RateLimitedError(SimplifyError):
    code = "RATE_LIMITED"


class AuthInvalidError(SimplifyError):
    code = "AUTH_INVALID"


class ProviderError(SimplifyError):
    code = "PROVIDER_ERROR"

    def __init__(self, status: Optional[int], message: str = ""):
        self.status = status
        super().__init__(message or f"API_ERROR_{status}")


class DocumentError(Exception):
    """Raised when an uploaded document cannot be turned into text."""
