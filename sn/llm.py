"""Single-request executor for SN.

One call to ``simplify_chunk`` is one chat completion against one credential.
Nothing is retried here; the dispatcher owns retry, backoff and requeue.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Iterable

from openai import (
    APIConnectionError,
    APIResponseValidationError,
    APIStatusError,
    AuthenticationError,
    OpenAI,
    RateLimitError,
)

from .config import DEFAULT_MODEL, GROQ_BASE_URL, MAX_TOKENS, REQUEST_TIMEOUT, TEMPERATURE
from .credentials import mask_key
from .errors import (
    AuthInvalidError,
    IncompleteProcessingError,
    NoCredentialsError,
    ProviderError,
    RateLimitedError,
    SimplifyError,
)
from .prompt import build_user_message

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _client_for(api_key: str) -> OpenAI:
    return OpenAI(
        api_key=api_key,
        base_url=GROQ_BASE_URL,
        timeout=REQUEST_TIMEOUT,
        max_retries=0,
    )


def _extract_content(response: Any, original_text: str) -> str:
    choices = getattr(response, "choices", None) or []
    message = getattr(choices[0], "message", None) if choices else None
    content = getattr(message, "content", None)
    if not content:
        logger.warning("Response had no message content; keeping original chunk text")
        return original_text
    return content


def simplify_chunk(chunk_text: str, api_key: str, model: str | None = None) -> str:
    client = _client_for(api_key)
    try:
        response = client.chat.completions.create(
            model=model or DEFAULT_MODEL,
            messages=[{"role": "user", "content": build_user_message(chunk_text)}],
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
        )
    except RateLimitError as exc:
        raise RateLimitedError(str(exc)) from exc
    except AuthenticationError as exc:
        raise AuthInvalidError(str(exc)) from exc
    except APIStatusError as exc:
        raise ProviderError(exc.status_code, str(exc)) from exc
    except APIResponseValidationError:
        logger.warning("Unparseable response body; keeping original chunk text")
        return chunk_text
    except APIConnectionError as exc:
        raise ProviderError(None, f"API_ERROR_TRANSPORT: {exc}") from exc

    return _extract_content(response, chunk_text)


def simplify_with_fallback(text: str, credentials: Iterable[str]) -> str:
    """Simplify one piece of text, trying each credential once in order.

    Intended for short one-off inputs; large bodies go through the dispatcher.
    """
    keys = list(credentials)
    if not keys:
        raise NoCredentialsError()

    for api_key in keys:
        try:
            return simplify_chunk(text, api_key)
        except SimplifyError as exc:
            logger.warning("Key %s failed with %s, trying next", mask_key(api_key), exc.code)

    raise IncompleteProcessingError(
        [0], "All API keys failed. Please check your configuration and try again."
    )
