"""Unit tests for the per-node rewrite rules."""

import pytest

from replawait.transform.constants import WRAP_PREFIX, WRAP_SUFFIX
from replawait.transform.patch import PatchBuffer
from replawait.transform.rules import WalkState, walk_body
from replawait.transform.wrapper import wrap


def run_rules(wrapped_body, snippet: str) -> tuple[WalkState, str]:
    """Walk the wrapped ``snippet`` and return the state plus the patched snippet."""
    body = wrapped_body(snippet)
    patch = PatchBuffer(wrap(snippet).encode("utf-8"))
    state = walk_body(body, patch)
    rendered = patch.render()
    # Strip the wrapper so assertions read like the snippet
    return state, rendered[len(WRAP_PREFIX) : -len(WRAP_SUFFIX)]


@pytest.mark.unit
class TestFlags:
    """contains_await / contains_return only see the top-level scope."""

    @pytest.mark.parametrize(
        "snippet",
        [
            "await 1",
            "if (x) { await y }",
            "const a = [await b]",
            "for await (const v of gen()) {}",
            "class A extends (await base()) {}",
        ],
    )
    def test_reachable_await(self, wrapped_body, snippet):
        state, _ = run_rules(wrapped_body, snippet)
        assert state.contains_await is True
        assert state.contains_return is False

    @pytest.mark.parametrize(
        "snippet",
        [
            "async function f() { await 1 }",
            "const g = async () => await 1",
            "const h = async function () { await 1 }",
            "class K { async m() { await 1 } }",
            "obj = { async m() { await 1 } }",
        ],
    )
    def test_await_in_nested_scope_is_ignored(self, wrapped_body, snippet):
        state, _ = run_rules(wrapped_body, snippet)
        assert state.contains_await is False

    def test_top_level_return(self, wrapped_body):
        state, _ = run_rules(wrapped_body, "if (x) { return await 1 }")
        assert state.contains_return is True
        assert state.contains_await is True

    def test_return_in_function_is_ignored(self, wrapped_body):
        state, _ = run_rules(wrapped_body, "function f() { return 1 }")
        assert state.contains_return is False


@pytest.mark.unit
class TestDeclarations:
    """Declarations become assignments to outer bindings."""

    def test_single_declarator(self, wrapped_body):
        _, text = run_rules(wrapped_body, "let x = 1;")
        assert text == "void (x = 1);"

    def test_declarator_without_initializer(self, wrapped_body):
        _, text = run_rules(wrapped_body, "let x;")
        assert text == "void (x=undefined);"

    def test_multiple_declarators(self, wrapped_body):
        _, text = run_rules(wrapped_body, "let x, y = 2;")
        assert text == "void ( (x=undefined), (y = 2));"

    def test_destructuring(self, wrapped_body):
        _, text = run_rules(wrapped_body, "const { a, b } = o")
        assert text == "void ({ a, b } = o)"

    def test_nested_let_untouched(self, wrapped_body):
        _, text = run_rules(wrapped_body, "if (ok) { let w = 1 }")
        assert text == "if (ok) { let w = 1 }"

    def test_nested_var_rewritten(self, wrapped_body):
        _, text = run_rules(wrapped_body, "if (ok) { var z = 1 }")
        assert text == "if (ok) { void (z = 1) }"

    def test_var_in_for_initializer(self, wrapped_body):
        _, text = run_rules(wrapped_body, "for (var i = 0; i < 2; i++) {}")
        assert text == "for (void (i = 0); i < 2; i++) {}"

    def test_let_in_for_initializer_untouched(self, wrapped_body):
        _, text = run_rules(wrapped_body, "for (let i = 0; i < 2; i++) {}")
        assert text == "for (let i = 0; i < 2; i++) {}"

    @pytest.mark.parametrize(
        ("snippet", "expected"),
        [
            ("for (var k in o) {}", "for (k in o) {}"),
            ("for (var x of xs) {}", "for (x of xs) {}"),
            ("for (const x of xs) {}", "for (const x of xs) {}"),
        ],
    )
    def test_for_in_head(self, wrapped_body, snippet, expected):
        _, text = run_rules(wrapped_body, snippet)
        assert text == expected

    def test_function_declaration(self, wrapped_body):
        _, text = run_rules(wrapped_body, "function f(){ var a = 1; return a }")
        assert text == "f=function f(){ var a = 1; return a }"

    def test_nested_function_declaration(self, wrapped_body):
        _, text = run_rules(wrapped_body, "{ async function g() {} }")
        assert text == "{ g=async function g() {} }"

    def test_generator_declaration(self, wrapped_body):
        _, text = run_rules(wrapped_body, "function* gen() { yield 1 }")
        assert text == "gen=function* gen() { yield 1 }"

    def test_top_level_class(self, wrapped_body):
        _, text = run_rules(wrapped_body, "class C { m() { var q } }")
        assert text == "C=class C { m() { var q } }"

    def test_nested_class_untouched(self, wrapped_body):
        _, text = run_rules(wrapped_body, "{ class D {} }")
        assert text == "{ class D {} }"


@pytest.mark.unit
class TestEarlyErrors:
    """Bindings the walk collects and the early errors it reports."""

    def test_binding_names_collected(self, wrapped_body):
        state, _ = run_rules(
            wrapped_body,
            "let [a, { b: [c], ...d }] = o; class K {} var { e = 1 } = p; function f() {} for (var k of ks) {}",
        )
        assert state.lexical_names == ["a", "c", "d", "K"]
        assert state.var_names == {"e", "f", "k"}
        assert state.early_error is None

    def test_nested_lexical_names_not_collected(self, wrapped_body):
        state, _ = run_rules(wrapped_body, "{ let x; class Y {} } function g() { const z = 1 }")
        assert state.lexical_names == []
        assert state.var_names == {"g"}

    def test_const_without_initializer(self, wrapped_body):
        state, _ = run_rules(wrapped_body, "const x = 1, y")
        assert state.early_error == "missing initializer in const declaration"

    def test_redeclared_let(self, wrapped_body):
        state, _ = run_rules(wrapped_body, "let x = 1; let x = 2")
        assert state.early_error == "identifier 'x' has already been declared"

    def test_let_conflicts_with_var(self, wrapped_body):
        state, _ = run_rules(wrapped_body, "let x; if (c) { var x }")
        assert state.early_error == "identifier 'x' has already been declared"

    def test_first_error_kept(self, wrapped_body):
        state, _ = run_rules(wrapped_body, "const a; let b; let b")
        assert state.early_error == "missing initializer in const declaration"
