"""Credential pool for SN.

The pool is fixed for the lifetime of the process. Emptiness is not an error
here; the dispatcher raises ``NoCredentialsError`` when it is asked to run
with nothing in the pool.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, Optional, Tuple

from .config import API_KEY_ENV_VARS, PLACEHOLDER_KEY


def _is_usable(key: Optional[str]) -> bool:
    if key is None:
        return False
    stripped = key.strip()
    return bool(stripped) and stripped != PLACEHOLDER_KEY


def build_pool(raw_keys: Iterable[Optional[str]]) -> Tuple[str, ...]:
    return tuple(key.strip() for key in raw_keys if _is_usable(key))


@lru_cache(maxsize=1)
def load_pool() -> Tuple[str, ...]:
    return build_pool(os.getenv(name) for name in API_KEY_ENV_VARS)


def mask_key(key: str) -> str:
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}...{key[-4:]}"
