import time
import uuid
from typing import Iterable


def next_numeric_id(existing_ids: Iterable[int]) -> int:
    """Millisecond timestamp id, bumped past every id already in use."""
    candidate = int(time.time() * 1000)
    highest = max(existing_ids, default=0)
    return max(candidate, highest + 1)


def new_string_id() -> str:
    return uuid.uuid4().hex
