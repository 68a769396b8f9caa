"""Message-passing schema between the index manager and its worker.

Outbound::

    {"operationId": int, "action": "buildIndex" | "processRange", "data": {...}}

Inbound::

    {"operationId": int, "action": "indexBuilt" | "rangeProcessed", "data": {...}}
    {"operationId": int, "error": str}

Payloads are plain dicts/lists so they can be copied across a process
boundary. :func:`handle_request` is the single implementation of every
action; the worker process and the in-process backend both call it.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from hidehelper.core.errors import BackendError, HideHelperError, InternalError
from hidehelper.index.models import (
    Chat,
    MessageIndex,
    RangeResult,
    RangeUpdate,
    is_system,
    message_id,
)
from hidehelper.index.ranges import DEFAULT_BATCH_SIZE, process_range
from hidehelper.index.store import build_index


class Action(StrEnum):
    """Requests understood by the worker."""

    BUILD_INDEX = "buildIndex"
    PROCESS_RANGE = "processRange"


class Reply(StrEnum):
    """Successful reply kinds."""

    INDEX_BUILT = "indexBuilt"
    RANGE_PROCESSED = "rangeProcessed"


REPLY_FOR: dict[Action, Reply] = {
    Action.BUILD_INDEX: Reply.INDEX_BUILT,
    Action.PROCESS_RANGE: Reply.RANGE_PROCESSED,
}


def parse_action(action: str) -> Action:
    try:
        return Action(action)
    except ValueError:
        raise BackendError.unsupported_operation(str(action)) from None


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def slim_messages(messages: Chat) -> list[dict[str, Any] | None]:
    """Reduce host messages to the fields the index reads.

    Identifiers are resolved here so the worker sees the same ids the caller
    would compute.
    """
    return [
        None if message is None else {"id": message_id(message, position), "is_system": is_system(message)}
        for position, message in enumerate(messages)
    ]


def encode_index(index: MessageIndex) -> dict[str, Any]:
    return {
        "hidden": list(index.hidden),
        "visible": list(index.visible),
        "systemMessages": list(index.system_messages),
        "messagePositions": [[mid, pos] for mid, pos in index.message_positions.items()],
        "lastUpdate": index.last_update,
    }


def decode_index(data: dict[str, Any]) -> MessageIndex:
    try:
        return MessageIndex(
            hidden=set(data["hidden"]),
            visible=set(data["visible"]),
            system_messages=set(data["systemMessages"]),
            message_positions={mid: pos for mid, pos in data["messagePositions"]},
            last_update=data["lastUpdate"],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise BackendError.invalid_message(f"malformed index: {e}") from e


def encode_range_result(result: RangeResult) -> dict[str, Any]:
    return {
        "updates": [
            [mid, {"position": update.position, "isHidden": update.is_hidden}]
            for mid, update in result.updates.items()
        ],
        "index": encode_index(result.index),
    }


def decode_range_result(data: dict[str, Any]) -> RangeResult:
    try:
        updates = {
            mid: RangeUpdate(position=entry["position"], is_hidden=entry["isHidden"])
            for mid, entry in data["updates"]
        }
        index_data = data["index"]
    except (KeyError, TypeError, ValueError) as e:
        raise BackendError.invalid_message(f"malformed range result: {e}") from e
    return RangeResult(updates=updates, index=decode_index(index_data))


def build_index_payload(messages: Chat) -> dict[str, Any]:
    return {"messages": slim_messages(messages)}


def process_range_payload(
    messages: Chat,
    index: MessageIndex | None,
    start: int,
    end: int,
    unhide: bool,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> dict[str, Any]:
    return {
        "messages": slim_messages(messages),
        "index": None if index is None else encode_index(index),
        "start": start,
        "end": end,
        "unhide": unhide,
        "batchSize": batch_size,
    }


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def handle_request(action: str, data: dict[str, Any]) -> tuple[Reply, dict[str, Any]]:
    """Run one action against a decoded payload.

    Raises:
        BackendError: unsupported action or malformed payload.
    """
    parsed = parse_action(action)
    try:
        messages = data["messages"]
    except (KeyError, TypeError) as e:
        raise BackendError.invalid_message(f"missing messages: {e}") from e

    if parsed is Action.BUILD_INDEX:
        index = build_index(messages)
        return Reply.INDEX_BUILT, {"index": encode_index(index)}

    index_data = data.get("index")
    # Without a snapshot, range against a fresh build of the same messages
    index = build_index(messages) if index_data is None else decode_index(index_data)
    try:
        result = process_range(
            messages,
            index,
            int(data["start"]),
            int(data["end"]),
            bool(data["unhide"]),
            batch_size=int(data.get("batchSize", DEFAULT_BATCH_SIZE)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise BackendError.invalid_message(f"malformed range request: {e}") from e
    return Reply.RANGE_PROCESSED, encode_range_result(result)


def serve_request(request: dict[str, Any]) -> dict[str, Any]:
    """Answer one outbound message with an inbound message.

    Never raises: failures become ``{"operationId", "error"}`` replies.
    """
    operation_id = request.get("operationId") if isinstance(request, dict) else None
    try:
        if not isinstance(request, dict):
            raise BackendError.invalid_message(f"expected a mapping, got {type(request).__name__}")
        reply, data = handle_request(request.get("action", ""), request.get("data") or {})
    except HideHelperError as e:
        return {"operationId": operation_id, "error": e.message, "code": e.code.value}
    except Exception as e:  # noqa: BLE001 - reported to the caller as an error reply
        err = InternalError.unexpected(f"{type(e).__name__}: {e}")
        return {"operationId": operation_id, "error": err.message, "code": err.code.value}
    return {"operationId": operation_id, "action": reply.value, "data": data}
