"""
Shared pytest fixtures and configuration for unified tests.

This module provides:
- Structlog configured for capture (test isolation)
- Settings cache reset
- Minimal Parser/Compiler implementations and processor families

Usage:
    Fixtures are auto-discovered by pytest. Simply use them as function
    arguments (pytest injects them automatically).
"""

import sys
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
import structlog

# Ensure unified package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from unified import unified
from unified.core.settings import reset_settings
from unified.framework.logging import clear_context


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> Generator[None, None, None]:
    """Route structlog through stdlib so caplog sees events; no caching between tests."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    clear_context()
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def clean_settings() -> Generator[None, None, None]:
    """Re-read settings from the environment for every test."""
    reset_settings()
    yield
    reset_settings()


# =============================================================================
# Collaborators
# =============================================================================


class LineParser:
    """
    Parses each non-empty line into a paragraph (or heading, for ``#``).

    ``rules`` maps a line prefix to a node type; plugins extend it.
    """

    rules: dict[str, str] = {"#": "heading"}

    def __init__(self, file, settings, processor):
        self.file = file
        self.settings = settings or {}
        self.processor = processor

    async def parse(self) -> dict[str, Any]:
        children = []
        for line in str(self.file).splitlines():
            if not line.strip():
                continue
            node_type = "paragraph"
            for prefix, rule_type in self.rules.items():
                if line.startswith(prefix):
                    node_type = rule_type
                    break
            children.append({"type": node_type, "value": line})
        return {"type": "root", "children": children}


class CountCompiler:
    """Compiles a root into the number of its children, as text."""

    def __init__(self, file, settings, processor):
        self.file = file
        self.settings = settings or {}
        self.processor = processor

    def compile(self) -> str:
        tree = self.file.namespace(self.processor.name)["tree"]
        return str(len(tree["children"]))


class EmptyParser:
    """Always parses to an empty root."""

    def __init__(self, file, settings, processor):
        self.file = file

    async def parse(self) -> dict[str, Any]:
        return {"type": "root", "children": []}


class TextCompiler:
    """Joins child values with newlines; settings may set a ``joiner``."""

    def __init__(self, file, settings, processor):
        self.file = file
        self.settings = settings or {}
        self.processor = processor

    def compile(self) -> str:
        tree = self.file.namespace(self.processor.name)["tree"]
        joiner = self.settings.get("joiner", "\n")
        return joiner.join(child["value"] for child in tree["children"])


@pytest.fixture
def line_parser() -> type:
    return LineParser


@pytest.fixture
def text_family() -> type:
    """A family built from LineParser and TextCompiler."""
    return unified(name="text", parser=LineParser, compiler=TextCompiler, data={"settings": {"gfm": True}})


@pytest.fixture
def count_family() -> type:
    """The minimal family: empty-root parser, child-count compiler."""
    return unified(name="count", parser=EmptyParser, compiler=CountCompiler)


@pytest.fixture
def root() -> dict[str, Any]:
    """A small syntax tree."""
    return {
        "type": "root",
        "children": [
            {"type": "heading", "value": "# Title"},
            {"type": "paragraph", "value": "Body"},
        ],
    }
