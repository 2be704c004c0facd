"""Wrap a REPL snippet in an immediately-invoked async arrow function.

The wrapper only exists to make a grammar that rejects top-level
``await``/``return`` accept the snippet, and to give it a block whose direct
children are exactly the snippet's top-level statements.
"""

from __future__ import annotations

from typing import Optional

from tree_sitter import Node, Tree

from .constants import WRAP_PREFIX, WRAP_SUFFIX


def wrap(snippet: str) -> str:
    """Return ``(async () => { <snippet> })()``."""
    return f"{WRAP_PREFIX}{snippet}{WRAP_SUFFIX}"


def _only_named_child(node: Node) -> Optional[Node]:
    children = [child for child in node.named_children if child.type != "comment"]
    if len(children) != 1:
        return None
    return children[0]


def locate_body(tree: Tree, wrapped: bytes) -> Optional[Node]:
    """Find the ``statement_block`` of the wrapper's arrow function.

    Returns None unless the program is exactly one call of the wrapper and the
    block spans from the wrapper's ``{`` to its ``}``. A snippet that closes
    the wrapper early parses fine but is not a single top-level body.
    """
    statement = _only_named_child(tree.root_node)
    if statement is None or statement.type != "expression_statement":
        return None

    call = statement.named_children[0] if statement.named_children else None
    if call is None or call.type != "call_expression":
        return None

    callee = call.child_by_field_name("function")
    if callee is None or callee.type != "parenthesized_expression":
        return None

    arrow = _only_named_child(callee)
    if arrow is None or arrow.type != "arrow_function":
        return None

    body = arrow.child_by_field_name("body")
    if body is None or body.type != "statement_block":
        return None

    # "{" is the last non-space character of the prefix, "}" the first of the suffix
    expected_start = len(WRAP_PREFIX.encode("utf-8")) - 2
    expected_end = len(wrapped) - len(WRAP_SUFFIX.encode("utf-8")) + 2
    if body.start_byte != expected_start or body.end_byte != expected_end:
        return None

    return body
