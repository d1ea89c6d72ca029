"""Test setup for dynalist-mcp."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from pydantic import SecretStr

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from dynalist_mcp.models import APIConfiguration, DynalistNode  # noqa: E402


def make_node(node_id: str, content: str = "", children: list[str] | None = None, **fields) -> DynalistNode:
    """Shorthand for building a node in tests."""
    return DynalistNode(id=node_id, content=content, children=children or [], **fields)


@pytest.fixture
def api_config() -> APIConfiguration:
    return APIConfiguration(api_token=SecretStr("test-token"), max_retries=3)


@pytest.fixture
def sample_nodes() -> list[DynalistNode]:
    """A small document.

    root
      a "Groceries"
        a1 "Milk"
        a2 "Eggs" (checked)
          a2x "Free range"
      b "Call mom" (note: two lines)
      c "" (empty leaf)
    """
    return [
        make_node("root", "Doc", ["a", "b", "c"]),
        make_node("a", "Groceries", ["a1", "a2"]),
        make_node("a1", "Milk"),
        make_node("a2", "Eggs", ["a2x"], checkbox=True, checked=True),
        make_node("a2x", "Free range"),
        make_node("b", "Call mom", note="after work\n\n  ask about trip  "),
        make_node("c", ""),
    ]
