"""Data types for the message visibility index.

A chat is an ordered sequence of host message objects (JSON mappings). The
index partitions their identifiers into ``hidden`` and ``visible`` and
remembers which ones were system messages when the index was built.

Positions recorded in an index are only valid until the next rebuild.
"""

from __future__ import annotations

import time
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

MessageId = Hashable
Message = Mapping[str, Any]
# Host chats may contain holes (deleted slots), represented as None.
Chat = Sequence[Message | None]


def now_ms() -> int:
    """Current time in Unix milliseconds."""
    return int(time.time() * 1000)


def message_id(message: Message, position: int) -> MessageId:
    """Identifier of ``message``: its ``id`` field, or its position if it has none."""
    mid = message.get("id")
    return position if mid is None else mid


def is_system(message: Message) -> bool:
    return bool(message.get("is_system"))


@dataclass
class MessageIndex:
    """Hidden/visible partition over message identifiers plus a position map.

    Invariants:
    - ``hidden`` and ``visible`` are disjoint
    - every key of ``message_positions`` is in exactly one of them
    - ``system_messages`` only changes on rebuild
    """

    hidden: set[MessageId] = field(default_factory=set)
    visible: set[MessageId] = field(default_factory=set)
    system_messages: set[MessageId] = field(default_factory=set)
    message_positions: dict[MessageId, int] = field(default_factory=dict)
    last_update: int = field(default_factory=now_ms)

    def __len__(self) -> int:
        return len(self.message_positions)

    def __contains__(self, mid: object) -> bool:
        return mid in self.message_positions


@dataclass(frozen=True, slots=True)
class MessageState:
    """Point-in-time view of one identifier. ``position`` is None if unknown."""

    is_hidden: bool
    is_visible: bool
    is_system: bool
    position: int | None


@dataclass(frozen=True, slots=True)
class RangeUpdate:
    """One visibility flip produced by a range operation."""

    position: int
    is_hidden: bool


@dataclass
class RangeResult:
    """Updates from a range operation, in scan order, and the resulting index."""

    updates: dict[MessageId, RangeUpdate]
    index: MessageIndex

    @property
    def changed(self) -> int:
        return len(self.updates)


@dataclass(frozen=True, slots=True)
class IndexStats:
    """Summary counts over the current index snapshot."""

    total_messages: int
    hidden_count: int
    visible_count: int
    system_count: int
    last_update: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total_messages": self.total_messages,
            "hidden_count": self.hidden_count,
            "visible_count": self.visible_count,
            "system_count": self.system_count,
            "last_update": self.last_update,
        }
