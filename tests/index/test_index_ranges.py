"""Tests for index/ranges.py: process_range and bound normalization."""

from __future__ import annotations

from typing import Any

import pytest

from hidehelper.index.models import RangeUpdate
from hidehelper.index.ranges import iter_chunks, normalize_range, process_range
from hidehelper.index.store import build_index


class TestNormalizeRange:
    """Clamping and ordering of inclusive bounds."""

    @pytest.mark.parametrize(
        ("start", "end", "length", "expected"),
        [
            (0, 2, 3, (0, 2)),
            (-5, 1, 3, (0, 1)),
            (1, 99, 3, (1, 2)),
            (2, 0, 3, (0, 2)),
            (50, -50, 10, (0, 9)),
            (4, 4, 10, (4, 4)),
        ],
    )
    def test_given_bounds_when_normalized_then_clamped_and_ordered(
        self, start: int, end: int, length: int, expected: tuple[int, int]
    ) -> None:
        assert normalize_range(start, end, length) == expected

    def test_given_empty_chat_when_normalized_then_none(self) -> None:
        assert normalize_range(0, 5, 0) is None


class TestIterChunks:
    """Batch splitting."""

    def test_given_span_when_chunked_then_covers_every_position_once(self) -> None:
        chunks = list(iter_chunks(3, 12, 4))

        assert [list(c) for c in chunks] == [[3, 4, 5, 6], [7, 8, 9, 10], [11, 12]]

    def test_given_zero_batch_when_chunked_then_raises(self) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            list(iter_chunks(0, 1, 0))


class TestProcessRange:
    """Range visibility updates."""

    def test_given_three_visible_when_first_hidden_then_only_it_changes(
        self, three_messages: list[dict[str, Any]]
    ) -> None:
        # Given
        index = build_index(three_messages)

        # When
        result = process_range(three_messages, index, 0, 0, unhide=False)

        # Then
        assert result.updates == {0: RangeUpdate(position=0, is_hidden=True)}
        assert index.hidden == {0}
        assert index.visible == {1, 2}
        assert result.index is index

    def test_given_hidden_first_when_unhidden_then_all_visible(
        self, three_messages: list[dict[str, Any]]
    ) -> None:
        # Given
        index = build_index(three_messages)
        process_range(three_messages, index, 0, 0, unhide=False)

        # When
        result = process_range(three_messages, index, 0, 0, unhide=True)

        # Then
        assert result.updates == {0: RangeUpdate(position=0, is_hidden=False)}
        assert index.visible == {0, 1, 2}
        assert index.hidden == set()

    def test_given_ten_visible_when_prefix_hidden_then_seven_hidden(
        self, ten_messages: list[dict[str, Any]]
    ) -> None:
        index = build_index(ten_messages)

        result = process_range(ten_messages, index, 0, 6, unhide=False)

        assert list(result.updates) == [0, 1, 2, 3, 4, 5, 6]
        assert len(index.hidden) == 7
        assert len(index.visible) == 3

    @pytest.mark.parametrize("unhide", [True, False])
    def test_given_applied_range_when_reapplied_then_no_updates(
        self, make_chat, unhide: bool
    ) -> None:
        # Given
        chat = make_chat(20, system={1, 4, 9, 15})
        index = build_index(chat)
        process_range(chat, index, 2, 17, unhide=unhide)

        # When
        second = process_range(chat, index, 2, 17, unhide=unhide)

        # Then
        assert second.updates == {}

    def test_given_mixed_states_when_hiding_then_only_visible_are_updated(self, make_chat) -> None:
        """Positions already in the target state never appear in updates."""
        # Given
        chat = make_chat(8, system={0, 3, 4})
        index = build_index(chat)

        # When
        result = process_range(chat, index, 0, 7, unhide=False)

        # Then
        assert set(result.updates) == {1, 2, 5, 6, 7}
        assert all(u.is_hidden for u in result.updates.values())
        assert index.hidden == set(range(8))

    def test_given_updates_when_returned_then_in_scan_order(self, make_chat) -> None:
        chat = [{"id": f"m{i}"} for i in range(6)]
        index = build_index(chat)

        result = process_range(chat, index, 1, 5, unhide=False)

        assert list(result.updates) == ["m1", "m2", "m3", "m4", "m5"]
        assert [u.position for u in result.updates.values()] == [1, 2, 3, 4, 5]

    @pytest.mark.parametrize("batch_size", [1, 3, 7, 50, 1000])
    def test_given_any_batch_size_when_processed_then_same_result(
        self, make_chat, batch_size: int
    ) -> None:
        # Given
        chat = make_chat(123, system={0, 10, 61, 122})
        baseline_index = build_index(chat)
        baseline = process_range(chat, baseline_index, 5, 118, unhide=False)
        index = build_index(chat)

        # When
        result = process_range(chat, index, 5, 118, unhide=False, batch_size=batch_size)

        # Then
        assert result.updates == baseline.updates
        assert index.hidden == baseline_index.hidden

    def test_given_empty_slot_in_range_when_processed_then_skipped(self) -> None:
        chat: list[dict[str, Any] | None] = [{"id": "a"}, None, {"id": "c"}]
        index = build_index(chat)

        result = process_range(chat, index, 0, 2, unhide=False)

        assert list(result.updates) == ["a", "c"]

    def test_given_message_added_after_build_when_processed_then_skipped(
        self, three_messages: list[dict[str, Any]]
    ) -> None:
        # Given
        index = build_index(three_messages)
        three_messages.append({"id": 99, "is_system": False})

        # When
        result = process_range(three_messages, index, 0, 3, unhide=False)

        # Then
        assert 99 not in result.updates
        assert 99 not in index.hidden

    def test_given_range_past_end_when_processed_then_ignores_missing_positions(
        self, three_messages: list[dict[str, Any]]
    ) -> None:
        index = build_index(three_messages)

        result = process_range(three_messages, index, 1, 10, unhide=False)

        assert set(result.updates) == {1, 2}

    def test_given_single_empty_position_when_processed_then_empty_updates(self) -> None:
        chat: list[dict[str, Any] | None] = [None]
        index = build_index(chat)

        result = process_range(chat, index, 0, 0, unhide=False)

        assert result.updates == {}
        assert result.changed == 0
