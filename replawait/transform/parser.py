"""Parser adapter over the tree-sitter JavaScript grammar.

tree-sitter never raises on bad input; it recovers and marks the damage with
ERROR/MISSING nodes. This adapter turns any such recovery into a plain
``None`` so callers treat the snippet as "not transformable" and let the host
evaluator report the real syntax error.
"""

from __future__ import annotations

import threading
from typing import Optional

import structlog
import tree_sitter as ts
import tree_sitter_javascript as ts_js

logger = structlog.get_logger()

_language: Optional[ts.Language] = None
_language_lock = threading.Lock()
# Parser objects hold per-parse state; keep one per thread
_local = threading.local()


def get_language() -> ts.Language:
    """Return (and cache) the JavaScript ``Language``."""
    global _language
    if _language is None:
        with _language_lock:
            if _language is None:
                _language = ts.Language(ts_js.language())
    return _language


def get_parser() -> ts.Parser:
    """Return (and cache) this thread's ``Parser``."""
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = ts.Parser(get_language())
        _local.parser = parser
    return parser


def parse(source: bytes) -> Optional[ts.Tree]:
    """Parse UTF-8 encoded JavaScript.

    Args:
        source: The wrapped snippet, encoded as UTF-8.

    Returns:
        The syntax tree, or None when the grammar had to recover from errors.
    """
    tree = get_parser().parse(source)
    if tree.root_node.has_error:
        logger.debug("parse_failed", source_length=len(source))
        return None
    return tree
