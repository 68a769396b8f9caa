"""Index manager: owns the current index snapshot for one chat."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import structlog

from hidehelper.config.models import IndexConfig
from hidehelper.index.backend import ExecutionBackend, create_backend
from hidehelper.index.models import Chat, IndexStats, MessageId, MessageIndex, RangeResult
from hidehelper.index.protocol import (
    Action,
    build_index_payload,
    decode_index,
    decode_range_result,
    process_range_payload,
)
from hidehelper.index.ranges import normalize_range

logger = structlog.get_logger()


@dataclass
class IndexManager:
    """
    Facade over an execution backend.

    Design:
    - One memoized build per chat; concurrent callers share it
    - A failed build is not memoized, so the next call starts a fresh one
    - The snapshot is replaced wholesale after each build or range update
    - ``reset()`` starts a new chat; results of operations begun before the
      reset are discarded
    - Range updates are not serialized against each other; the last one to
      complete wins
    """

    backend: ExecutionBackend | None = None
    config: IndexConfig = field(default_factory=IndexConfig)

    _index: MessageIndex | None = field(default=None, init=False)
    _build: asyncio.Future[MessageIndex] | None = field(default=None, init=False)
    _generation: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.backend is None:
            self.backend = create_backend(self.config)

    @property
    def index(self) -> MessageIndex | None:
        """Current snapshot, or None before the first build."""
        return self._index

    def reset(self) -> None:
        """Forget the snapshot and re-arm the build (new chat loaded)."""
        self._generation += 1
        self._index = None
        self._build = None
        logger.debug("index_reset", generation=self._generation)

    async def ensure_index(self, messages: Chat) -> MessageIndex:
        """Build the index once per chat and return it."""
        if self._build is None or _failed(self._build):
            self._build = asyncio.ensure_future(self._run_build(messages, self._generation))
        # shield: a cancelled caller must not cancel the shared build
        return await asyncio.shield(self._build)

    async def _run_build(self, messages: Chat, generation: int) -> MessageIndex:
        assert self.backend is not None
        started = time.perf_counter()
        data = await self.backend.execute(Action.BUILD_INDEX, build_index_payload(messages))
        index = decode_index(data["index"])
        if generation == self._generation:
            self._index = index
        logger.info(
            "index_built",
            total=len(index),
            hidden=len(index.hidden),
            system=len(index.system_messages),
            backend=self.backend.name,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return index

    async def process_range(
        self,
        messages: Chat,
        start: int,
        end: int,
        unhide: bool,
    ) -> RangeResult:
        """Hide (``unhide=False``) or unhide every message in ``[start, end]``.

        Bounds are clamped to the chat and swapped if reversed.
        """
        assert self.backend is not None
        generation = self._generation
        built = await self.ensure_index(messages)

        bounds = normalize_range(start, end, len(messages))
        if bounds is None:
            return RangeResult(updates={}, index=self._index or built)
        lo, hi = bounds

        snapshot = self._index if generation == self._generation and self._index is not None else built
        payload = process_range_payload(
            messages, snapshot, lo, hi, unhide, batch_size=self.config.batch_size
        )
        data = await self.backend.execute(Action.PROCESS_RANGE, payload)
        result = decode_range_result(data)

        if generation == self._generation:
            self._index = result.index
        else:
            logger.debug("stale_range_result_dropped", start=lo, end=hi)

        logger.info(
            "range_processed",
            start=lo,
            end=hi,
            unhide=unhide,
            changed=result.changed,
            backend=self.backend.name,
        )
        return result

    def is_message_hidden(self, mid: MessageId) -> bool:
        return self._index is not None and mid in self._index.hidden

    def is_message_visible(self, mid: MessageId) -> bool:
        if self._index is None or mid not in self._index:
            return True
        return mid in self._index.visible

    def get_message_position(self, mid: MessageId) -> int | None:
        if self._index is None:
            return None
        return self._index.message_positions.get(mid)

    def get_index_stats(self) -> IndexStats | None:
        if self._index is None:
            return None
        return IndexStats(
            total_messages=len(self._index.message_positions),
            hidden_count=len(self._index.hidden),
            visible_count=len(self._index.visible),
            system_count=len(self._index.system_messages),
            last_update=self._index.last_update,
        )

    async def close(self) -> None:
        assert self.backend is not None
        await self.backend.close()

    async def __aenter__(self) -> IndexManager:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()


def _failed(future: asyncio.Future[Any]) -> bool:
    return future.done() and (future.cancelled() or future.exception() is not None)
