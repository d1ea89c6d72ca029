"""Tests for level-batched tree insertion."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from dynalist_mcp.models import EditDocumentResponse, InsertChange, NetworkError, RemoteRejectionError
from dynalist_mcp.tree.level_insert import (
    ROOT_PARENT,
    build_level_changes,
    group_by_level,
    insert_tree_under_parent,
)
from dynalist_mcp.tree.markdown_parser import PendingNode, parse_markdown_bullets


class FakeEditor:
    """Records each batch and hands out sequential ids."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[InsertChange]]] = []
        self._next = 0

    async def __call__(self, file_id: str, changes) -> EditDocumentResponse:
        self.calls.append((file_id, list(changes)))
        ids = []
        for _ in changes:
            self._next += 1
            ids.append(f"n{self._next}")
        return EditDocumentResponse(new_node_ids=ids)


class TestGroupByLevel:
    def test_three_level_tree(self) -> None:
        """A, B at level 0; C (child of A) at level 1 pointing at index 0."""
        tree = [
            PendingNode("A", [PendingNode("C")]),
            PendingNode("B"),
        ]
        levels = group_by_level(tree)

        assert len(levels) == 2
        assert [(n.content, n.parent_level_index) for n in levels[0]] == [
            ("A", ROOT_PARENT),
            ("B", ROOT_PARENT),
        ]
        assert [(n.content, n.parent_level_index) for n in levels[1]] == [("C", 0)]

    def test_parent_indices_follow_previous_level(self) -> None:
        tree = parse_markdown_bullets("- a\n    - a1\n- b\n    - b1\n    - b2\n        - b2x")
        levels = group_by_level(tree)

        assert [n.content for n in levels[1]] == ["a1", "b1", "b2"]
        assert [n.parent_level_index for n in levels[1]] == [0, 1, 1]
        assert [n.local_index for n in levels[1]] == [0, 1, 2]
        assert [(n.content, n.parent_level_index) for n in levels[2]] == [("b2x", 2)]

    def test_empty(self) -> None:
        assert group_by_level([]) == []


class TestBuildLevelChanges:
    def test_indices_count_per_parent(self) -> None:
        tree = parse_markdown_bullets("- a\n    - a1\n    - a2\n- b\n    - b1")
        level1 = group_by_level(tree)[1]

        changes = build_level_changes(level1, "root", ["idA", "idB"])
        assert [(c.parent_id, c.index, c.content) for c in changes] == [
            ("idA", 0, "a1"),
            ("idA", 1, "a2"),
            ("idB", 0, "b1"),
        ]

    def test_start_index_offsets_level_zero(self) -> None:
        level0 = group_by_level(parse_markdown_bullets("- x\n- y"))[0]
        changes = build_level_changes(level0, "p", [], start_index=5)
        assert [c.index for c in changes] == [5, 6]

    def test_checkbox_flag_and_parsed_formatting(self) -> None:
        level0 = group_by_level(parse_markdown_bullets("- [x] done\n# Title\n- plain"))[0]
        changes = build_level_changes(level0, "p", [], checkbox=False)

        assert changes[0].checkbox is True and changes[0].checked is True
        assert changes[1].heading == 1 and changes[1].checkbox is None
        assert changes[2].model_dump(exclude_none=True) == {
            "action": "insert", "parent_id": "p", "index": 2, "content": "plain",
        }

        forced = build_level_changes(level0, "p", [], checkbox=True)
        assert all(c.checkbox for c in forced)


class TestInsertTreeUnderParent:
    @pytest.mark.asyncio
    async def test_example_scenario(self) -> None:
        """Two level-0 inserts under p1, one level-1 insert under Buy milk's new id."""
        editor = FakeEditor()
        tree = parse_markdown_bullets("- Buy milk\n    - 2% milk\n- Call mom")

        result = await insert_tree_under_parent(editor, "doc", "p1", tree)

        assert len(editor.calls) == 2
        file_id, level0 = editor.calls[0]
        assert file_id == "doc"
        assert [(c.parent_id, c.index, c.content) for c in level0] == [
            ("p1", 0, "Buy milk"),
            ("p1", 1, "Call mom"),
        ]
        _, level1 = editor.calls[1]
        assert [(c.parent_id, c.index, c.content) for c in level1] == [("n1", 0, "2% milk")]

        assert result.total_created == 3
        assert result.root_node_ids == ["n1", "n2"]

    @pytest.mark.asyncio
    async def test_child_parent_is_id_assigned_to_its_parent(self) -> None:
        editor = FakeEditor()
        tree = [PendingNode("A", [PendingNode("C")]), PendingNode("B")]

        await insert_tree_under_parent(editor, "doc", "R", tree)

        (c_insert,) = editor.calls[1][1]
        assert c_insert.parent_id == "n1"

    @pytest.mark.asyncio
    async def test_start_index_only_applies_to_level_zero(self) -> None:
        editor = FakeEditor()
        tree = parse_markdown_bullets("- a\n    - a1")

        await insert_tree_under_parent(editor, "doc", "p", tree, start_index=3)

        assert editor.calls[0][1][0].index == 3
        assert editor.calls[1][1][0].index == 0

    @pytest.mark.asyncio
    async def test_one_call_per_level(self) -> None:
        editor = FakeEditor()
        tree = parse_markdown_bullets("- a\n    - b\n        - c\n            - d\n- e")

        result = await insert_tree_under_parent(editor, "doc", "p", tree)

        assert [len(changes) for _, changes in editor.calls] == [2, 1, 1, 1]
        assert result.total_created == 5

    @pytest.mark.asyncio
    async def test_empty_tree_makes_no_calls(self) -> None:
        edit = AsyncMock()
        result = await insert_tree_under_parent(edit, "doc", "p", [])
        edit.assert_not_awaited()
        assert result.total_created == 0
        assert result.root_node_ids == []

    @pytest.mark.asyncio
    async def test_failure_aborts_remaining_levels(self) -> None:
        edit = AsyncMock(side_effect=[
            EditDocumentResponse(new_node_ids=["x1"]),
            NetworkError("boom"),
        ])
        tree = parse_markdown_bullets("- a\n    - b\n        - c")

        with pytest.raises(NetworkError):
            await insert_tree_under_parent(edit, "doc", "p", tree)
        assert edit.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_ids_raise_before_next_level(self) -> None:
        edit = AsyncMock(return_value=EditDocumentResponse(new_node_ids=["only-one"]))
        tree = parse_markdown_bullets("- a\n    - a1\n- b")

        with pytest.raises(RemoteRejectionError) as exc_info:
            await insert_tree_under_parent(edit, "doc", "p", tree)
        assert exc_info.value.code == "IncompleteInsert"
        assert edit.await_count == 1
