from __future__ import annotations

from collections.abc import Sized

from .errors import TooManyRecords

MAX_BATCH_SIZE = 100


def ensure_batch_size(items: Sized, limit: int = MAX_BATCH_SIZE) -> None:
    count = len(items)
    if count > limit:
        raise TooManyRecords(count, limit)
