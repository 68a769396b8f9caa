"""Tests for index/store.py: build_index, get_state, update_state."""

from __future__ import annotations

from typing import Any

import pytest

from hidehelper.index.models import MessageIndex, message_id
from hidehelper.index.store import build_index, get_state, update_state


class TestMessageId:
    """Identifier resolution."""

    def test_given_message_with_id_when_resolved_then_uses_id(self) -> None:
        assert message_id({"id": "abc"}, 4) == "abc"

    def test_given_message_without_id_when_resolved_then_uses_position(self) -> None:
        assert message_id({"mes": "hi"}, 4) == 4

    def test_given_null_id_when_resolved_then_uses_position(self) -> None:
        assert message_id({"id": None}, 7) == 7

    def test_given_zero_id_when_resolved_then_keeps_zero(self) -> None:
        """A falsy but present id is still the id."""
        assert message_id({"id": 0}, 5) == 0


class TestBuildIndex:
    """Index construction."""

    def test_given_plain_messages_when_built_then_all_visible(
        self, three_messages: list[dict[str, Any]]
    ) -> None:
        # When
        index = build_index(three_messages)

        # Then
        assert index.visible == {0, 1, 2}
        assert index.hidden == set()
        assert index.system_messages == set()
        assert index.message_positions == {0: 0, 1: 1, 2: 2}

    def test_given_system_messages_when_built_then_hidden_and_tagged(self, make_chat) -> None:
        # Given
        chat = make_chat(5, system={1, 3})

        # When
        index = build_index(chat)

        # Then
        assert index.hidden == {1, 3}
        assert index.system_messages == {1, 3}
        assert index.visible == {0, 2, 4}

    def test_given_any_chat_when_built_then_partition_holds(self, make_chat) -> None:
        """hidden and visible are disjoint and together cover every id seen."""
        # Given
        chat = make_chat(40, system={0, 5, 6, 7, 39})

        # When
        index = build_index(chat)

        # Then
        assert index.hidden.isdisjoint(index.visible)
        assert index.hidden | index.visible == set(index.message_positions)
        assert index.system_messages <= set(index.message_positions)

    def test_given_same_chat_when_built_twice_then_same_partition(self, make_chat) -> None:
        chat = make_chat(25, system={2, 3, 20})

        first = build_index(chat)
        second = build_index(chat)

        assert first.hidden == second.hidden
        assert first.visible == second.visible
        assert first.system_messages == second.system_messages
        assert first.message_positions == second.message_positions

    def test_given_messages_without_ids_when_built_then_positions_are_ids(self) -> None:
        chat = [{"mes": "a"}, {"mes": "b", "is_system": True}, {"mes": "c"}]

        index = build_index(chat)

        assert index.visible == {0, 2}
        assert index.hidden == {1}

    def test_given_empty_slot_when_built_then_skipped(self) -> None:
        chat = [{"id": "a"}, None, {"id": "c"}]

        index = build_index(chat)

        assert index.message_positions == {"a": 0, "c": 2}

    def test_given_duplicate_ids_when_built_then_last_occurrence_wins(self) -> None:
        chat = [{"id": "x", "is_system": True}, {"id": "x", "is_system": False}]

        index = build_index(chat)

        assert index.message_positions == {"x": 1}
        assert index.visible == {"x"}
        assert index.hidden == set()

    def test_given_empty_chat_when_built_then_empty_index(self) -> None:
        index = build_index([])

        assert len(index) == 0
        assert index.last_update > 0


class TestGetState:
    """Point lookups."""

    def test_given_system_message_when_get_state_then_hidden_and_system(self, make_chat) -> None:
        index = build_index(make_chat(3, system={2}))

        state = get_state(index, 2)

        assert state.is_hidden is True
        assert state.is_visible is False
        assert state.is_system is True
        assert state.position == 2

    def test_given_unknown_id_when_get_state_then_position_none(
        self, three_messages: list[dict[str, Any]]
    ) -> None:
        index = build_index(three_messages)

        state = get_state(index, "missing")

        assert state.position is None
        assert state.is_hidden is False
        assert state.is_visible is False


class TestUpdateState:
    """Moving ids between hidden and visible."""

    def test_given_visible_id_when_hidden_then_moves(self, three_messages) -> None:
        index = build_index(three_messages)

        update_state(index, 1, True)

        assert index.hidden == {1}
        assert index.visible == {0, 2}

    def test_given_hidden_id_when_unhidden_then_moves_but_stays_system(self, make_chat) -> None:
        index = build_index(make_chat(2, system={0}))

        update_state(index, 0, False)

        assert index.visible == {0, 1}
        assert index.system_messages == {0}

    def test_given_same_state_when_reapplied_then_noop_but_touches_timestamp(
        self, three_messages
    ) -> None:
        # Given
        index = build_index(three_messages)
        update_state(index, 0, True)
        index.last_update = 1

        # When
        update_state(index, 0, True)

        # Then
        assert index.hidden == {0}
        assert index.visible == {1, 2}
        assert index.last_update > 1

    @pytest.mark.parametrize("is_hidden", [True, False])
    def test_given_any_update_when_applied_then_sets_stay_disjoint(
        self, three_messages, is_hidden: bool
    ) -> None:
        index = build_index(three_messages)

        update_state(index, 2, is_hidden)

        assert index.hidden.isdisjoint(index.visible)
        assert isinstance(index, MessageIndex)
