"""Depth-first walk over a tree-sitter tree that knows every node's ancestors.

Rules are looked up by ``node.type``. Each rule receives the node, the walk
state, the ancestor chain (a tuple ending with the node itself) and the
``walk`` function to continue into children. The ancestor chain is passed
down explicitly, so the walk holds no mutable traversal state of its own.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from tree_sitter import Node

Ancestors = tuple[Node, ...]
Walk = Callable[[Node, Any, Ancestors], None]
Rule = Callable[[Node, Any, Ancestors, Walk], None]


def recurse(node: Node, state: Any, ancestors: Ancestors, walk: Walk) -> None:
    """Default rule: visit every named child unchanged."""
    for child in node.named_children:
        walk(child, state, ancestors)


def skip(node: Node, state: Any, ancestors: Ancestors, walk: Walk) -> None:
    """Rule for opaque subtrees: do not descend."""


def is_top_level(ancestors: Ancestors, body: Node) -> bool:
    """Whether the last node in ``ancestors`` is a direct child of ``body``."""
    return len(ancestors) >= 2 and ancestors[-2] == body


def make_walker(rules: Mapping[str, Rule], default: Optional[Rule] = None) -> Walk:
    """Build a walk function dispatching on node type.

    Args:
        rules: Rule per node type.
        default: Rule for node types not in ``rules``; ``recurse`` if omitted.

    Returns:
        ``walk(node, state, ancestors)``. Pass ``()`` as ``ancestors`` to start.
    """
    fallback = default or recurse

    def walk(node: Node, state: Any, ancestors: Ancestors) -> None:
        # A rule may hand its own node back to walk; don't list it twice
        if not ancestors or ancestors[-1] != node:
            ancestors = ancestors + (node,)
        rule = rules.get(node.type, fallback)
        rule(node, state, ancestors, walk)

    return walk
