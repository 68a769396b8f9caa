"""Correlation-id request/response multiplexer.

Each request gets a monotonically increasing operation id, a future, and
its own deadline. Replies are matched back by id; replies for ids that are
no longer pending (timed out, failed, already answered) are dropped.

All methods must be called from the event loop thread.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import structlog

from hidehelper.core.errors import BackendError

logger = structlog.get_logger()


@dataclass
class PendingOperation:
    """An in-flight request awaiting its reply."""

    operation_id: int
    action: str
    future: asyncio.Future[Any]
    created_at: float = field(default_factory=time.monotonic)
    timer: asyncio.TimerHandle | None = None

    @property
    def age_sec(self) -> float:
        return time.monotonic() - self.created_at


@dataclass
class RequestMultiplexer:
    """Table of pending operations keyed by operation id."""

    timeout_sec: float = 5.0

    _pending: dict[int, PendingOperation] = field(default_factory=dict, init=False)
    _next_id: int = field(default=0, init=False)

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self._pending

    @property
    def pending_ids(self) -> list[int]:
        return list(self._pending)

    def register(self, action: str) -> PendingOperation:
        """Allocate an id and future for a new request and arm its deadline."""
        loop = asyncio.get_running_loop()
        self._next_id += 1
        op = PendingOperation(
            operation_id=self._next_id,
            action=action,
            future=loop.create_future(),
        )
        op.timer = loop.call_later(self.timeout_sec, self._expire, op.operation_id)
        self._pending[op.operation_id] = op
        return op

    def discard(self, operation_id: int) -> PendingOperation | None:
        """Remove an entry without completing its future."""
        op = self._pending.pop(operation_id, None)
        if op is not None and op.timer is not None:
            op.timer.cancel()
        return op

    def resolve(self, operation_id: Any, result: Any) -> bool:
        """Complete a pending request. Returns False if the id is unknown."""
        op = self.discard(operation_id)
        if op is None:
            return False
        if not op.future.done():
            op.future.set_result(result)
        return True

    def reject(self, operation_id: Any, exc: BaseException) -> bool:
        """Fail a pending request. Returns False if the id is unknown."""
        op = self.discard(operation_id)
        if op is None:
            return False
        if not op.future.done():
            op.future.set_exception(exc)
        return True

    def fail_all(self, exc: BaseException) -> int:
        """Fail every pending request with ``exc``. Returns how many were failed."""
        count = 0
        for operation_id in list(self._pending):
            if self.reject(operation_id, exc):
                count += 1
        return count

    def _expire(self, operation_id: int) -> None:
        op = self._pending.pop(operation_id, None)
        if op is None:
            return
        logger.warning(
            "operation_timed_out",
            operation_id=operation_id,
            action=op.action,
            timeout_sec=self.timeout_sec,
        )
        if not op.future.done():
            op.future.set_exception(BackendError.timeout(operation_id, op.action, self.timeout_sec))
