"""Message visibility index.

Public API:
- IndexManager: memoized builds, range updates, lookups
- build_index / process_range: the pure core both backends run
- LocalBackend / WorkerBackend: execution strategies
"""

from hidehelper.index.backend import (
    BackendState,
    ExecutionBackend,
    LocalBackend,
    ProcessChannel,
    WorkerBackend,
    WorkerChannel,
    create_backend,
)
from hidehelper.index.manager import IndexManager
from hidehelper.index.models import (
    IndexStats,
    MessageIndex,
    MessageState,
    RangeResult,
    RangeUpdate,
    message_id,
)
from hidehelper.index.ranges import normalize_range, process_range
from hidehelper.index.store import build_index, get_state, update_state

__all__ = [
    "BackendState",
    "ExecutionBackend",
    "IndexManager",
    "IndexStats",
    "LocalBackend",
    "MessageIndex",
    "MessageState",
    "ProcessChannel",
    "RangeResult",
    "RangeUpdate",
    "WorkerBackend",
    "WorkerChannel",
    "build_index",
    "create_backend",
    "get_state",
    "message_id",
    "normalize_range",
    "process_range",
    "update_state",
]
