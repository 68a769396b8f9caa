"""Execution backends for index work.

Two interchangeable strategies behind :class:`ExecutionBackend`:

- :class:`LocalBackend` runs :func:`protocol.serve_request` in the calling
  thread.
- :class:`WorkerBackend` sends the same requests to a background process
  over a :class:`WorkerChannel` and matches replies by operation id.

State machine of the worker backend::

    UNINITIALIZED --start ok--> READY --channel error--> DEGRADED
    UNINITIALIZED --start failed------------------------> DEGRADED

DEGRADED is terminal: every later call runs on the local backend.
"""

from __future__ import annotations

import asyncio
import contextlib
import multiprocessing
import queue
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from hidehelper.core.errors import BackendError, ChannelError, ErrorCode
from hidehelper.index._internal.multiplexer import RequestMultiplexer
from hidehelper.index.protocol import REPLY_FOR, parse_action, serve_request

if TYPE_CHECKING:
    from multiprocessing.context import BaseContext
    from multiprocessing.process import BaseProcess

    from hidehelper.config.models import IndexConfig

logger = structlog.get_logger()

MessageHandler = Callable[[dict[str, Any]], None]
ErrorHandler = Callable[[BaseException], None]

# How often the reader thread checks that the worker is still alive
_READER_POLL_SEC = 0.2
_JOIN_TIMEOUT_SEC = 1.0


class BackendState(Enum):
    """Worker backend state."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DEGRADED = "degraded"


class ExecutionBackend(ABC):
    """Runs index actions and returns the reply payload."""

    @abstractmethod
    async def execute(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Run ``action`` on ``payload``.

        Raises:
            BackendError: unsupported action, timeout, or a failed operation.
        """

    async def close(self) -> None:  # noqa: B027
        """Release resources. Default: nothing to release."""

    @property
    def name(self) -> str:
        return type(self).__name__


class LocalBackend(ExecutionBackend):
    """Synchronous in-process strategy.

    Requests go through the same :func:`protocol.serve_request` the worker
    runs, so failures surface with the same error codes on both strategies.
    """

    async def execute(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        reply = serve_request({"operationId": None, "action": action, "data": payload})
        if "error" in reply:
            raise _reply_error(reply)
        return reply["data"]  # type: ignore[no-any-return]


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------


class WorkerChannel(ABC):
    """Transport to an isolated worker.

    ``start`` wires the callbacks; they must be invoked on ``loop``.
    ``on_error`` signals a channel-level failure, never a per-operation one.
    """

    @abstractmethod
    def start(
        self,
        loop: asyncio.AbstractEventLoop,
        on_message: MessageHandler,
        on_error: ErrorHandler,
    ) -> None:
        """Start the worker. Raises ChannelError if it cannot start."""

    @abstractmethod
    def send(self, message: dict[str, Any]) -> None:
        """Queue one request. Raises ChannelError if the channel is broken."""

    @abstractmethod
    def close(self) -> None:
        """Stop the worker. Safe to call more than once."""


def worker_main(inbox: Any, outbox: Any) -> None:
    """Worker process entry point.

    Serves requests until it reads ``None``, then echoes ``None`` back.
    """
    while True:
        request = inbox.get()
        if request is None:
            outbox.put(None)
            return
        outbox.put(serve_request(request))


class ProcessChannel(WorkerChannel):
    """Worker running in a child process, fed through multiprocessing queues.

    A daemon reader thread forwards replies to the event loop.
    """

    def __init__(self, start_method: str | None = None) -> None:
        self._start_method = start_method
        self._process: BaseProcess | None = None
        self._inbox: Any = None
        self._outbox: Any = None
        self._reader: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._on_message: MessageHandler | None = None
        self._on_error: ErrorHandler | None = None
        self._closing = threading.Event()

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def start(
        self,
        loop: asyncio.AbstractEventLoop,
        on_message: MessageHandler,
        on_error: ErrorHandler,
    ) -> None:
        self._loop = loop
        self._on_message = on_message
        self._on_error = on_error
        try:
            # Raises ValueError when the start method is unavailable on this platform
            ctx: BaseContext = multiprocessing.get_context(self._start_method)
            self._inbox = ctx.Queue()
            self._outbox = ctx.Queue()
            self._process = ctx.Process(
                target=worker_main,
                args=(self._inbox, self._outbox),
                name="hidehelper-index-worker",
                daemon=True,
            )
            self._process.start()
            self._reader = threading.Thread(
                target=self._read_loop,
                name="hidehelper-index-reader",
                daemon=True,
            )
            self._reader.start()
        except (OSError, RuntimeError, ValueError) as e:
            self.close()
            raise ChannelError.fatal(f"worker failed to start: {e}") from e
        logger.info("worker_started", pid=self._process.pid)

    def send(self, message: dict[str, Any]) -> None:
        if self._closing.is_set() or self._process is None or not self._process.is_alive():
            raise ChannelError.fatal("worker process is not running")
        try:
            self._inbox.put(message)
        except (OSError, ValueError) as e:
            raise ChannelError.fatal(f"send failed: {e}") from e

    def _read_loop(self) -> None:
        assert self._process is not None
        while not self._closing.is_set():
            try:
                message = self._outbox.get(timeout=_READER_POLL_SEC)
            except queue.Empty:
                if not self._process.is_alive() and not self._closing.is_set():
                    self._post_error(
                        ChannelError.fatal(f"worker exited with code {self._process.exitcode}")
                    )
                    return
                continue
            except (EOFError, OSError, ValueError) as e:
                if not self._closing.is_set():
                    self._post_error(ChannelError.fatal(f"receive failed: {e}"))
                return
            if message is None:
                return
            self._post(self._on_message, message)

    def _post(self, callback: Callable[[Any], None] | None, arg: Any) -> None:
        if callback is None or self._loop is None:
            return
        # Loop already closed: nobody is waiting for the reply
        with contextlib.suppress(RuntimeError):
            self._loop.call_soon_threadsafe(callback, arg)

    def _post_error(self, exc: BaseException) -> None:
        self._post(self._on_error, exc)

    def close(self) -> None:
        if self._closing.is_set():
            return
        self._closing.set()
        process = self._process
        if process is not None and process.is_alive():
            with contextlib.suppress(OSError, ValueError):
                self._inbox.put(None)
            process.join(_JOIN_TIMEOUT_SEC)
        if process is not None and process.is_alive():
            process.terminate()
            process.join(_JOIN_TIMEOUT_SEC)
        reader = self._reader
        if reader is not None and reader.is_alive() and reader is not threading.current_thread():
            reader.join(_JOIN_TIMEOUT_SEC)
        for q in (self._inbox, self._outbox):
            if q is not None:
                q.cancel_join_thread()
                q.close()
        if process is not None:
            logger.info("worker_stopped", exitcode=process.exitcode)


# ---------------------------------------------------------------------------
# Worker backend
# ---------------------------------------------------------------------------


class WorkerBackend(ExecutionBackend):
    """Background strategy with permanent fallback to :class:`LocalBackend`."""

    def __init__(
        self,
        channel_factory: Callable[[], WorkerChannel] = ProcessChannel,
        *,
        timeout_sec: float = 5.0,
        fallback: ExecutionBackend | None = None,
    ) -> None:
        self._channel_factory = channel_factory
        self._channel: WorkerChannel | None = None
        self._fallback = fallback or LocalBackend()
        self._mux = RequestMultiplexer(timeout_sec=timeout_sec)
        self._state = BackendState.UNINITIALIZED
        self._last_error: BaseException | None = None

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def last_error(self) -> BaseException | None:
        return self._last_error

    @property
    def pending_count(self) -> int:
        return len(self._mux)

    def _start(self) -> None:
        channel: WorkerChannel | None = None
        try:
            channel = self._channel_factory()
            channel.start(asyncio.get_running_loop(), self._on_message, self._on_error)
        except Exception as e:  # noqa: BLE001 - any startup failure degrades to local
            self._channel = channel
            err = e if isinstance(e, ChannelError) else ChannelError.fatal(
                f"worker failed to start: {e}"
            )
            self._degrade(err)
            return
        self._channel = channel
        self._state = BackendState.READY

    async def execute(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        parsed = parse_action(action)

        if self._state is BackendState.UNINITIALIZED:
            self._start()
        if self._state is BackendState.DEGRADED:
            return await self._fallback.execute(action, payload)

        assert self._channel is not None
        op = self._mux.register(parsed.value)
        logger.debug("operation_dispatched", operation_id=op.operation_id, action=op.action)
        try:
            self._channel.send({"operationId": op.operation_id, "action": op.action, "data": payload})
        except ChannelError as e:
            self._degrade(e)

        try:
            return await op.future  # type: ignore[no-any-return]
        except asyncio.CancelledError:
            self._mux.discard(op.operation_id)
            raise

    def _on_message(self, message: dict[str, Any]) -> None:
        operation_id = message.get("operationId")

        if "error" in message and operation_id is None:
            # Error not tied to any request: the worker itself is failing
            self._on_error(ChannelError.fatal(str(message["error"])))
            return

        op = self._mux.discard(operation_id)
        if op is None:
            logger.debug("late_reply_dropped", operation_id=operation_id)
            return
        if op.future.done():
            return

        if "error" in message:
            op.future.set_exception(_reply_error(message))
            return

        expected = REPLY_FOR[parse_action(op.action)]
        if message.get("action") != expected.value:
            op.future.set_exception(
                BackendError.invalid_message(
                    f"expected {expected.value!r}, got {message.get('action')!r}",
                    operation_id=operation_id,
                )
            )
            return
        op.future.set_result(message.get("data") or {})

    def _on_error(self, exc: BaseException) -> None:
        err = exc if isinstance(exc, ChannelError) else ChannelError.fatal(str(exc))
        self._degrade(err)

    def _degrade(self, err: ChannelError) -> None:
        if self._state is BackendState.DEGRADED:
            return
        self._state = BackendState.DEGRADED
        self._last_error = err
        failed = self._mux.fail_all(err)
        logger.warning("backend_degraded", error=err.message, failed_operations=failed)
        if self._channel is not None:
            self._channel.close()

    async def close(self) -> None:
        self._mux.fail_all(ChannelError.fatal("backend closed"))
        if self._channel is not None:
            await asyncio.to_thread(self._channel.close)


def _reply_error(message: dict[str, Any]) -> BackendError:
    reason = str(message["error"])
    if message.get("code") == ErrorCode.UNSUPPORTED_OPERATION.value:
        return BackendError(code=ErrorCode.UNSUPPORTED_OPERATION, message=reason)
    return BackendError.operation_failed(reason, operation_id=message.get("operationId"))


def create_backend(config: IndexConfig) -> ExecutionBackend:
    """Backend matching ``config``: worker process, or local when disabled."""
    if not config.use_worker:
        return LocalBackend()
    return WorkerBackend(
        lambda: ProcessChannel(config.worker_start_method),
        timeout_sec=config.operation_timeout_sec,
    )
