"""Pytest configuration and shared fixtures for the replawait test suite."""

import logging
import sys
from pathlib import Path
from typing import Callable

import pytest
from tree_sitter import Node

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from replawait.transform.config import TransformConfig
from replawait.transform.parser import parse
from replawait.transform.wrapper import locate_body, wrap


# Configure logging for tests
logging.basicConfig(level=logging.WARNING)


@pytest.fixture
def wrapped_body() -> Callable[[str], Node]:
    """Parse a snippet inside the wrapper and return the wrapper body node."""

    def _body(snippet: str) -> Node:
        wrapped = wrap(snippet).encode("utf-8")
        tree = parse(wrapped)
        assert tree is not None, f"snippet did not parse: {snippet!r}"
        body = locate_body(tree, wrapped)
        assert body is not None, f"no wrapper body for: {snippet!r}"
        return body

    return _body


@pytest.fixture
def uncached_config() -> TransformConfig:
    """Config with result caching off so every call runs the pipeline."""
    return TransformConfig(return_last_expression=True, cache_size=None)


@pytest.fixture
def test_code() -> dict[str, str]:
    """Collection of REPL snippets."""
    return {
        "simple_await": "await 1",
        "no_await": "let x = 1; x + 1",
        "top_level_return": "await 1; return 2",
        "nested_await": "async function f() { await 1 }",
        "syntax_error": "await (",
        "declarations": "let x = 1, y; const z = await Promise.resolve(3)",
        "function_decl": "function f(){ var a = 1; return a } ; await f();",
        "class_decl": "class C {}; await 1",
    }


# Test markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests running node")
    config.addinivalue_line("markers", "slow: Tests that take >1s")


# Timeout configuration
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add timeout based on markers."""
    for item in items:
        if item.get_closest_marker("slow") or item.get_closest_marker("e2e"):
            item.add_marker(pytest.mark.timeout(30))
        elif item.get_closest_marker("unit"):
            item.add_marker(pytest.mark.timeout(5))
        else:
            item.add_marker(pytest.mark.timeout(10))
