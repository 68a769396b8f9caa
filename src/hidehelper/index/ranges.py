"""Range visibility updates over a built index."""

from __future__ import annotations

from collections.abc import Iterator

from hidehelper.index.models import (
    Chat,
    MessageId,
    MessageIndex,
    RangeResult,
    RangeUpdate,
    message_id,
)
from hidehelper.index.store import update_state

DEFAULT_BATCH_SIZE = 50


def normalize_range(start: int, end: int, length: int) -> tuple[int, int] | None:
    """Clamp inclusive bounds into ``[0, length - 1]`` and order them.

    Returns None for an empty chat.
    """
    if length <= 0:
        return None
    last = length - 1
    start = min(max(start, 0), last)
    end = min(max(end, 0), last)
    if start > end:
        start, end = end, start
    return start, end


def iter_chunks(start: int, end: int, batch_size: int) -> Iterator[range]:
    """Split the inclusive span ``[start, end]`` into ranges of ``batch_size``."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    for chunk_start in range(start, end + 1, batch_size):
        yield range(chunk_start, min(chunk_start + batch_size - 1, end) + 1)


def process_range(
    messages: Chat,
    index: MessageIndex,
    start: int,
    end: int,
    unhide: bool,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> RangeResult:
    """Flip every message in ``[start, end]`` that is not already in the target state.

    Bounds must already be normalized (see :func:`normalize_range`). With
    ``unhide`` only hidden identifiers are touched, otherwise only visible
    ones, so re-applying a satisfied range yields no updates. Positions with
    no message, or whose identifier the index has never seen, are skipped.

    ``index`` is mutated in place and returned in the result.
    """
    updates: dict[MessageId, RangeUpdate] = {}
    source = index.hidden if unhide else index.visible

    for chunk in iter_chunks(start, end, batch_size):
        for position in chunk:
            if not 0 <= position < len(messages):
                continue
            message = messages[position]
            if message is None:
                continue

            mid = message_id(message, position)
            if mid not in source:
                continue

            updates[mid] = RangeUpdate(position=position, is_hidden=not unhide)
            update_state(index, mid, not unhide)

    return RangeResult(updates=updates, index=index)
