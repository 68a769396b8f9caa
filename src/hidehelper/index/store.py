"""Build and update primitives for :class:`MessageIndex`."""

from __future__ import annotations

from hidehelper.index.models import (
    Chat,
    MessageId,
    MessageIndex,
    MessageState,
    is_system,
    message_id,
    now_ms,
)


def build_index(messages: Chat) -> MessageIndex:
    """Index ``messages`` in one ordered pass.

    System messages start hidden and are tagged in ``system_messages``;
    everything else starts visible. Empty slots are skipped.
    """
    index = MessageIndex()
    for position, message in enumerate(messages):
        if message is None:
            continue
        mid = message_id(message, position)
        # Duplicate ids: the last occurrence decides position and state
        index.hidden.discard(mid)
        index.visible.discard(mid)
        index.message_positions[mid] = position
        if is_system(message):
            index.hidden.add(mid)
            index.system_messages.add(mid)
        else:
            index.visible.add(mid)
    index.last_update = now_ms()
    return index


def get_state(index: MessageIndex, mid: MessageId) -> MessageState:
    return MessageState(
        is_hidden=mid in index.hidden,
        is_visible=mid in index.visible,
        is_system=mid in index.system_messages,
        position=index.message_positions.get(mid),
    )


def update_state(index: MessageIndex, mid: MessageId, is_hidden: bool) -> None:
    """Move ``mid`` into ``hidden`` or ``visible``. Always bumps ``last_update``."""
    if is_hidden:
        index.visible.discard(mid)
        index.hidden.add(mid)
    else:
        index.hidden.discard(mid)
        index.visible.add(mid)
    index.last_update = now_ms()
