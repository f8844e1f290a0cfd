"""Join per-chunk results back into one body of text."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, Union

from .config import RESULT_SEPARATOR
from .errors import IncompleteProcessingError

ResultTable = Union[Sequence[Optional[str]], Mapping[int, Optional[str]]]


def assemble(results: ResultTable, total: int, separator: str = RESULT_SEPARATOR) -> str:
    if isinstance(results, Mapping):
        ordered = [results.get(index) for index in range(total)]
    else:
        ordered = [results[index] if index < len(results) else None for index in range(total)]

    missing = [index for index, result in enumerate(ordered) if result is None]
    if missing:
        raise IncompleteProcessingError(missing)
    return separator.join(ordered)
