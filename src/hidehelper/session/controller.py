"""Hide policy for an open chat.

Keeps only the last N messages visible, reacting to the host's
"chat changed" and "message received" notifications. Visibility changes
reach the host through a ``render(message_id, is_hidden)`` callback.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from hidehelper.config.user_config import AppliedSetting, HideSettings, SettingsStore
from hidehelper.core.errors import ConfigError
from hidehelper.index.manager import IndexManager
from hidehelper.index.models import Chat, MessageId, RangeResult

logger = structlog.get_logger()

Renderer = Callable[[MessageId, bool], None]


def merge_updates(results: Iterable[RangeResult]) -> list[tuple[int, MessageId, bool]]:
    """Collapse successive range results into one change per position.

    A position flipped and flipped back within the batch is dropped.
    Returns ``(position, message_id, is_hidden)`` sorted by position.
    """
    before: dict[int, bool] = {}
    after: dict[int, tuple[MessageId, bool]] = {}
    for result in results:
        for mid, update in result.updates.items():
            before.setdefault(update.position, not update.is_hidden)
            after[update.position] = (mid, update.is_hidden)
    return [
        (position, mid, is_hidden)
        for position, (mid, is_hidden) in sorted(after.items())
        if before[position] != is_hidden
    ]


def flag_renderer(messages: list[dict[str, Any]], manager: IndexManager) -> Renderer:
    """Renderer that writes visibility back into ``is_system`` of chat messages."""

    def render(mid: MessageId, is_hidden: bool) -> None:
        position = manager.get_message_position(mid)
        if position is None or position >= len(messages):
            logger.debug("render_target_missing", message_id=mid)
            return
        messages[position]["is_system"] = is_hidden

    return render


@dataclass
class HideController:
    """Applies the hide-last-N setting to a chat through an :class:`IndexManager`."""

    manager: IndexManager
    settings_store: SettingsStore
    render: Renderer | None = None
    owner: str | None = None

    _indexed_length: int | None = field(default=None, init=False)

    @property
    def settings(self) -> HideSettings:
        return self.settings_store.load()

    def set_hide_last_n(self, value: int) -> HideSettings:
        """Store the floor for the current owner, or globally when there is none."""
        if value < 0:
            raise ConfigError.invalid_value("hide_last_n", value, "must be >= 0")
        settings = self.settings_store.load()
        if self.owner is not None:
            settings.floors[self.owner] = value
        else:
            settings.hide_last_n = value
        self.settings_store.save(settings)
        return settings

    async def _refresh(self, chat: Chat) -> None:
        # Messages added or removed since the last build: positions are stale
        if self._indexed_length is not None and self._indexed_length != len(chat):
            self.manager.reset()
        await self.manager.ensure_index(chat)
        self._indexed_length = len(chat)

    async def apply_hide_settings(self, chat: Chat) -> list[RangeResult]:
        """Unhide everything, then hide all but the last N messages.

        N is 0: everything is unhidden and the applied record cleared.
        N at or above the chat length: nothing changes.
        """
        length = len(chat)
        if length == 0:
            return []

        await self._refresh(chat)
        settings = self.settings_store.load()
        floor = settings.effective_floor(self.owner)

        results: list[RangeResult] = []
        if 0 < floor < length:
            visible_start = length - floor
            results.append(await self.manager.process_range(chat, 0, length - 1, unhide=True))
            results.append(await self.manager.process_range(chat, 0, visible_start - 1, unhide=False))
            settings.last_applied = AppliedSetting(type="lastN", value=floor)
        elif floor == 0:
            results.append(await self.manager.process_range(chat, 0, length - 1, unhide=True))
            settings.last_applied = None
        else:
            logger.debug("hide_floor_not_reached", floor=floor, length=length)
            return results

        self.settings_store.save(settings)
        rendered = self._render(results)
        logger.info(
            "hide_settings_applied",
            floor=floor,
            length=length,
            owner=self.owner,
            rendered=rendered,
        )
        return results

    async def apply_last_settings(self, chat: Chat) -> list[RangeResult]:
        """Replay the last applied setting, if any."""
        last = self.settings_store.load().last_applied
        if last is None or last.type != "lastN":
            return []
        return await self.apply_hide_settings(chat)

    async def on_chat_changed(self, chat: Chat, owner: str | None = None) -> list[RangeResult]:
        """New chat loaded: rebuild the index and replay the last setting."""
        self.manager.reset()
        self._indexed_length = None
        self.owner = owner
        await self._refresh(chat)
        return await self.apply_last_settings(chat)

    async def on_message_received(self, chat: Chat) -> list[RangeResult]:
        """Keep the policy in force as the chat grows."""
        return await self.apply_last_settings(chat)

    def _render(self, results: list[RangeResult]) -> int:
        if self.render is None:
            return 0
        changes = merge_updates(results)
        for _position, mid, is_hidden in changes:
            self.render(mid, is_hidden)
        return len(changes)
