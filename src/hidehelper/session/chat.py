"""Chat files in the host's JSON Lines format.

The first line may be a header object carrying ``chat_metadata``; it is
kept verbatim and is not a message. Every other non-blank line is one
message object.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hidehelper.core.errors import ChatFileError

HEADER_KEY = "chat_metadata"


@dataclass
class ChatFile:
    """A loaded chat: optional header plus ordered messages."""

    path: Path
    messages: list[dict[str, Any]] = field(default_factory=list)
    header: dict[str, Any] | None = None

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def hidden_positions(self) -> list[int]:
        return [i for i, m in enumerate(self.messages) if m.get("is_system")]


def load_chat(path: Path) -> ChatFile:
    """Read a chat file.

    Raises:
        ChatFileError: file missing, bad JSON, or a line that is not an object.
    """
    if not path.exists():
        raise ChatFileError.file_not_found(str(path))

    chat = ChatFile(path=path)
    with path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as e:
                raise ChatFileError.parse_error(str(path), line_no, str(e)) from e
            if not isinstance(obj, dict):
                raise ChatFileError.parse_error(str(path), line_no, "expected a JSON object")
            if line_no == 1 and HEADER_KEY in obj:
                chat.header = obj
                continue
            chat.messages.append(obj)
    return chat


def save_chat(chat: ChatFile, path: Path | None = None) -> Path:
    """Write ``chat`` atomically (temp file + replace). Returns the target path."""
    target = path or chat.path
    lines = []
    if chat.header is not None:
        lines.append(json.dumps(chat.header, ensure_ascii=False))
    lines.extend(json.dumps(m, ensure_ascii=False) for m in chat.messages)

    fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write("\n".join(lines))
            if lines:
                f.write("\n")
        Path(tmp).replace(target)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    return target
