"""Per-node rules for the top-level await rewrite.

The rules record whether an ``await`` or a ``return`` is reachable from the
top level without crossing a function boundary, and patch declarations so
they assign into bindings the host evaluator already owns:

- top-level ``class C {}`` becomes ``C=class C {}``;
- every hoisted ``function f() {}`` becomes ``f=function f() {}``;
- ``var`` declarations anywhere, and top-level ``let``/``const``, become
  ``void``-prefixed assignment expressions, e.g.
  ``let x = 1, y;`` -> ``void ( (x = 1), (y=undefined));``.

Function bodies, methods and class field initializers are not entered.

The grammar does not check early errors, so the walk also notes the ones the
declaration rewrite would hide: a ``const`` without initializer, and a
top-level ``let``/``const``/``class`` name bound twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from tree_sitter import Node

from .constants import (
    DECLARATION_TYPES,
    FUNCTION_DECLARATION_TYPES,
    FUNCTION_SCOPED_KEYWORD,
    OPAQUE_NODE_TYPES,
)
from .patch import PatchBuffer
from .walker import Ancestors, Rule, Walk, is_top_level, make_walker, recurse, skip


@dataclass
class WalkState:
    """Mutable state for one walk over a wrapper body."""

    body: Node
    patch: PatchBuffer
    contains_await: bool = False
    contains_return: bool = False
    # Top-level let/const/class names, in order, and names hoisted by var/function
    lexical_names: list[str] = field(default_factory=list)
    var_names: set[str] = field(default_factory=set)
    # First early error a JavaScript parser would reject the snippet for
    early_error: Optional[str] = None

    def fail(self, reason: str) -> None:
        if self.early_error is None:
            self.early_error = reason


def _text(node: Node) -> str:
    return (node.text or b"").decode("utf-8")


def _declared_name(node: Node) -> str:
    name = node.child_by_field_name("name")
    if name is None:
        raise ValueError(f"{node.type} without a name at byte {node.start_byte}")
    return _text(name)


def _declaration_keyword(node: Node) -> Node:
    """The ``var``/``let``/``const`` token of a declaration."""
    kind = node.child_by_field_name("kind")
    if kind is not None:
        return kind
    # variable_declaration has no "kind" field; its first token is "var"
    return node.children[0]


def _binding_names(pattern: Node) -> list[str]:
    """Names bound by a declarator target or loop head, destructuring included."""
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [_text(pattern)]
    if pattern.type == "pair_pattern":
        value = pattern.child_by_field_name("value")
        return _binding_names(value) if value is not None else []
    if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
        left = pattern.child_by_field_name("left")
        return _binding_names(left) if left is not None else []
    if pattern.type in ("array_pattern", "object_pattern", "rest_pattern"):
        names: list[str] = []
        for child in pattern.named_children:
            names.extend(_binding_names(child))
        return names
    return []


def visit_class_declaration(node: Node, state: WalkState, ancestors: Ancestors, walk: Walk) -> None:
    if is_top_level(ancestors, state.body):
        name = _declared_name(node)
        state.lexical_names.append(name)
        state.patch.prepend(node, f"{name}=")
    recurse(node, state, ancestors, walk)


def visit_function_declaration(node: Node, state: WalkState, ancestors: Ancestors, walk: Walk) -> None:
    # Hoists out of any block, so no parent check; the body is its own scope
    if is_top_level(ancestors, state.body):
        state.var_names.add(_declared_name(node))
    state.patch.prepend(node, f"{_declared_name(node)}=")


def visit_await_expression(node: Node, state: WalkState, ancestors: Ancestors, walk: Walk) -> None:
    state.contains_await = True
    recurse(node, state, ancestors, walk)


def visit_return_statement(node: Node, state: WalkState, ancestors: Ancestors, walk: Walk) -> None:
    state.contains_return = True
    recurse(node, state, ancestors, walk)


def visit_declaration(node: Node, state: WalkState, ancestors: Ancestors, walk: Walk) -> None:
    keyword = _declaration_keyword(node)
    kind = _text(keyword)
    declarators = [child for child in node.named_children if child.type == "variable_declarator"]

    if kind == "const" and any(d.child_by_field_name("value") is None for d in declarators):
        state.fail("missing initializer in const declaration")

    names: list[str] = []
    for declarator in declarators:
        target = declarator.child_by_field_name("name")
        if target is not None:
            names.extend(_binding_names(target))

    top_level = is_top_level(ancestors, state.body)
    if kind == FUNCTION_SCOPED_KEYWORD:
        state.var_names.update(names)
    elif top_level:
        state.lexical_names.extend(names)

    if kind == FUNCTION_SCOPED_KEYWORD or top_level:
        if len(declarators) == 1:
            state.patch.replace(keyword.start_byte, keyword.end_byte, "void")
        else:
            state.patch.replace(keyword.start_byte, keyword.end_byte, "void (")

        for declarator in declarators:
            state.patch.prepend(declarator, "(")
            if declarator.child_by_field_name("value") is not None:
                state.patch.append(declarator, ")")
            else:
                state.patch.append(declarator, "=undefined)")

        if len(declarators) != 1:
            state.patch.append(declarators[-1], ")")

    recurse(node, state, ancestors, walk)


def visit_for_in_statement(node: Node, state: WalkState, ancestors: Ancestors, walk: Walk) -> None:
    """``for (... in/of ...)`` loops, including ``for await``.

    A ``var`` head keeps its binding but drops the keyword: the loop then
    assigns the outer binding, since ``void (x=undefined)`` is no valid target.
    """
    if any(child.type == "await" for child in node.children):
        state.contains_await = True

    kind = node.child_by_field_name("kind")
    left = node.child_by_field_name("left")
    if kind is not None and left is not None and _text(kind) == FUNCTION_SCOPED_KEYWORD:
        state.var_names.update(_binding_names(left))
        state.patch.replace(kind.start_byte, left.start_byte, "")

    recurse(node, state, ancestors, walk)


RULES: dict[str, Rule] = {
    "class_declaration": visit_class_declaration,
    "await_expression": visit_await_expression,
    "return_statement": visit_return_statement,
    "for_in_statement": visit_for_in_statement,
}
RULES.update({node_type: visit_function_declaration for node_type in FUNCTION_DECLARATION_TYPES})
RULES.update({node_type: visit_declaration for node_type in DECLARATION_TYPES})
RULES.update({node_type: skip for node_type in OPAQUE_NODE_TYPES})

walk = make_walker(RULES)


def walk_body(body: Node, patch: PatchBuffer) -> WalkState:
    """Run the rules over a wrapper body and return the resulting state."""
    state = WalkState(body=body, patch=patch)
    walk(body, state, ())
    _check_redeclarations(state)
    return state


def _check_redeclarations(state: WalkState) -> None:
    """A let/const/class name may be bound only once in the body scope."""
    seen: set[str] = set()
    for name in state.lexical_names:
        if name in seen or name in state.var_names:
            state.fail(f"identifier {name!r} has already been declared")
            return
        seen.add(name)
