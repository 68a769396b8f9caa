"""Tests for session/chat.py: JSON Lines chat files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from hidehelper.core.errors import ChatFileError, ErrorCode
from hidehelper.session.chat import ChatFile, load_chat, save_chat


def _write_lines(path: Path, *objects: object) -> Path:
    path.write_text("\n".join(json.dumps(o) for o in objects) + "\n", encoding="utf-8")
    return path


class TestLoadChat:
    """Reading chat files."""

    def test_given_header_line_when_loaded_then_kept_apart(self, tmp_path: Path) -> None:
        path = _write_lines(
            tmp_path / "chat.jsonl",
            {"user_name": "me", "chat_metadata": {"note": "x"}},
            {"id": 1, "mes": "hi", "is_system": False},
            {"id": 2, "mes": "yo", "is_system": True},
        )

        chat = load_chat(path)

        assert chat.header == {"user_name": "me", "chat_metadata": {"note": "x"}}
        assert len(chat) == 2
        assert chat.hidden_positions == [1]

    def test_given_no_header_when_loaded_then_first_line_is_message(self, tmp_path: Path) -> None:
        path = _write_lines(tmp_path / "chat.jsonl", {"mes": "a"}, {"mes": "b"})

        chat = load_chat(path)

        assert chat.header is None
        assert [m["mes"] for m in chat.messages] == ["a", "b"]

    def test_given_blank_lines_when_loaded_then_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "chat.jsonl"
        path.write_text('{"mes": "a"}\n\n   \n{"mes": "b"}\n', encoding="utf-8")

        assert len(load_chat(path)) == 2

    def test_given_missing_file_when_loaded_then_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(ChatFileError) as exc_info:
            load_chat(tmp_path / "nope.jsonl")

        assert exc_info.value.code == ErrorCode.CHAT_FILE_NOT_FOUND

    def test_given_bad_json_when_loaded_then_parse_error_with_line(self, tmp_path: Path) -> None:
        path = tmp_path / "chat.jsonl"
        path.write_text('{"mes": "a"}\n{not json\n', encoding="utf-8")

        with pytest.raises(ChatFileError) as exc_info:
            load_chat(path)

        assert exc_info.value.code == ErrorCode.CHAT_PARSE_ERROR
        assert exc_info.value.details["line"] == 2

    def test_given_non_object_line_when_loaded_then_parse_error(self, tmp_path: Path) -> None:
        path = tmp_path / "chat.jsonl"
        path.write_text('{"mes": "a"}\n[1, 2]\n', encoding="utf-8")

        with pytest.raises(ChatFileError, match="expected a JSON object"):
            load_chat(path)


class TestSaveChat:
    """Writing chat files."""

    def test_given_loaded_chat_when_saved_then_reloads_identically(self, tmp_path: Path) -> None:
        path = _write_lines(
            tmp_path / "chat.jsonl",
            {"chat_metadata": {}},
            {"id": 1, "mes": "héllo", "is_system": False},
        )
        chat = load_chat(path)
        chat.messages[0]["is_system"] = True

        save_chat(chat)
        reloaded = load_chat(path)

        assert reloaded.header == {"chat_metadata": {}}
        assert reloaded.messages == [{"id": 1, "mes": "héllo", "is_system": True}]
        assert "héllo" in path.read_text(encoding="utf-8")

    def test_given_other_target_when_saved_then_source_untouched(self, tmp_path: Path) -> None:
        source = _write_lines(tmp_path / "a.jsonl", {"mes": "a"})
        chat = load_chat(source)
        chat.messages.append({"mes": "b"})

        target = save_chat(chat, tmp_path / "b.jsonl")

        assert target == tmp_path / "b.jsonl"
        assert len(load_chat(source)) == 1
        assert len(load_chat(target)) == 2

    def test_given_save_when_done_then_no_temp_files_left(self, tmp_path: Path) -> None:
        save_chat(ChatFile(path=tmp_path / "c.jsonl", messages=[{"mes": "x"}]))

        assert [p.name for p in tmp_path.iterdir()] == ["c.jsonl"]
