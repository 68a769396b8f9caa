"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local hidehelper package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of hidehelper modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("hidehelper"):
        del sys.modules[module_name]


def _make_chat(count: int, *, system: set[int] | None = None) -> list[dict[str, Any]]:
    """Chat of ``count`` messages with ids 0..count-1; positions in ``system`` are hidden."""
    system = system or set()
    return [
        {"id": i, "name": "User" if i % 2 == 0 else "Bot", "mes": f"message {i}", "is_system": i in system}
        for i in range(count)
    ]


@pytest.fixture
def make_chat() -> Callable[..., list[dict[str, Any]]]:
    """Factory for host-style chats."""
    return _make_chat


@pytest.fixture
def three_messages() -> list[dict[str, Any]]:
    return _make_chat(3)


@pytest.fixture
def ten_messages() -> list[dict[str, Any]]:
    return _make_chat(10)
