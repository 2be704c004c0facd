"""Top-level await rewrite for JavaScript REPL input.

Pipeline: wrap the snippet in ``(async () => { ... })()``, parse it, walk the
wrapper body with the rules in ``rules.py`` while recording text patches, then
decide:

- unparseable, closes the wrapper early, or has an early error such as a
  redeclared ``let``: no transform;
- a ``return`` reachable from the top level: no transform, since the snippet
  is invalid as typed and must fail normally;
- no ``await`` reachable from the top level: no transform, nothing to gain;
- otherwise emit the patched wrapper, turning a trailing expression statement
  into ``return (...)`` so the wrapper resolves to its value.

The caller runs the result and awaits the promise it evaluates to. Bindings
declared at the top level must already exist in the caller's persistent scope;
the rewrite only assigns them.
"""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, Field
from tree_sitter import Node

from .config import TransformConfig
from .parser import parse
from .patch import PatchBuffer
from .rules import walk_body
from .wrapper import locate_body, wrap

logger = structlog.get_logger()


class TransformOutcome(str, Enum):
    """Why a snippet was or was not rewritten.

    - TRANSFORMED: Rewritten code is available.
    - PARSE_FAILED: The wrapped snippet does not parse as one wrapper body,
      or has an early error a JavaScript parser would reject.
    - TOO_DEEP: Nesting exceeded the interpreter's recursion limit.
    - NO_AWAIT: No ``await`` outside nested functions.
    - TOP_LEVEL_RETURN: A ``return`` outside nested functions.
    """

    TRANSFORMED = "transformed"
    PARSE_FAILED = "parse_failed"
    TOO_DEEP = "too_deep"
    NO_AWAIT = "no_await"
    TOP_LEVEL_RETURN = "top_level_return"


class TransformReport(BaseModel):
    outcome: TransformOutcome = Field(description="Result of the rewrite attempt")
    source: str = Field(description="Snippet as submitted")
    code: Optional[str] = Field(
        default=None, description="Rewritten code, present only when transformed"
    )
    contains_await: bool = Field(default=False, description="Top-level await was found")
    contains_return: bool = Field(default=False, description="Top-level return was found")
    returns_last_expression: bool = Field(
        default=False, description="Trailing expression statement was turned into a return"
    )

    @property
    def transformed(self) -> bool:
        return self.outcome is TransformOutcome.TRANSFORMED


def _last_statement(body: Node) -> Optional[Node]:
    statements = [child for child in body.named_children if child.type != "comment"]
    return statements[-1] if statements else None


def _return_last_expression(body: Node, patch: PatchBuffer) -> bool:
    """Make the wrapper resolve to the value of a trailing expression statement.

    For ``( expr ) ;`` the statement starts at ``(`` and the expression ends
    at the last ``)``. ``return (`` goes before the statement so no paren is
    left in front of ``return``; the closing ``)`` goes after the expression
    so it lands before the ``;`` (only more ``)`` can sit in between).
    """
    last = _last_statement(body)
    if last is None or last.type != "expression_statement":
        return False
    expressions = [child for child in last.named_children if child.type != "comment"]
    if not expressions:
        return False
    patch.prepend(last, "return (")
    patch.append(expressions[0], ")")
    return True


def process_top_level_await(source: str, *, return_last_expression: bool = True) -> TransformReport:
    """Rewrite ``source`` so its top-level ``await`` runs inside an async wrapper.

    Args:
        source: One REPL snippet, exactly as submitted.
        return_last_expression: Turn a trailing expression statement into a
            ``return`` so the wrapper's promise resolves to its value.

    Returns:
        TransformReport: ``code`` is set only for ``TransformOutcome.TRANSFORMED``.
    """
    try:
        wrapped = wrap(source).encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates; the host's own evaluation will reject them
        return TransformReport(outcome=TransformOutcome.PARSE_FAILED, source=source)

    tree = parse(wrapped)
    body = locate_body(tree, wrapped) if tree is not None else None
    if body is None:
        return TransformReport(outcome=TransformOutcome.PARSE_FAILED, source=source)

    patch = PatchBuffer(wrapped)
    try:
        state = walk_body(body, patch)
    except RecursionError:
        return TransformReport(outcome=TransformOutcome.TOO_DEEP, source=source)

    if state.early_error is not None:
        logger.debug("early_error", reason=state.early_error)
        return TransformReport(outcome=TransformOutcome.PARSE_FAILED, source=source)

    flags = {"contains_await": state.contains_await, "contains_return": state.contains_return}
    if state.contains_return:
        return TransformReport(outcome=TransformOutcome.TOP_LEVEL_RETURN, source=source, **flags)
    if not state.contains_await:
        return TransformReport(outcome=TransformOutcome.NO_AWAIT, source=source, **flags)

    returns_last = return_last_expression and _return_last_expression(body, patch)

    return TransformReport(
        outcome=TransformOutcome.TRANSFORMED,
        source=source,
        code=patch.render(),
        returns_last_expression=returns_last,
        **flags,
    )


def transform(snippet: str) -> Optional[str]:
    """Rewrite a snippet for top-level await.

    Returns:
        The rewritten code, or None meaning "evaluate the snippet unchanged".
    """
    return process_top_level_await(snippet).code


class TopLevelAwaitTransformer:
    """Configurable rewrite with a bounded result cache and counters.

    The cache is keyed by the snippet's MD5 (non-cryptographic use); REPL
    users re-submit the same line often after editing history.
    """

    def __init__(self, config: TransformConfig | None = None):
        self.config = config if config is not None else TransformConfig.from_env()
        self._cache: OrderedDict[str, TransformReport] = OrderedDict()
        self.stats = {
            "transforms": 0,
            "transformed": 0,
            "cache_hits": 0,
        }
        self.outcome_counts = {outcome: 0 for outcome in TransformOutcome}

        logger.info(
            "TopLevelAwaitTransformer initialized",
            return_last_expression=self.config.return_last_expression,
            cache_size=self.config.cache_size,
        )

    def analyze(self, snippet: str) -> TransformReport:
        """Rewrite ``snippet`` and report the outcome."""
        if not isinstance(snippet, str):
            raise TypeError(f"snippet must be str, not {type(snippet).__name__}")

        self.stats["transforms"] += 1
        key = hashlib.md5(snippet.encode("utf-8", "surrogatepass")).hexdigest()

        report = self._cache.get(key)
        if report is not None:
            self._cache.move_to_end(key)
            self.stats["cache_hits"] += 1
        else:
            report = process_top_level_await(
                snippet, return_last_expression=self.config.return_last_expression
            )
            self._remember(key, report)

        self.outcome_counts[report.outcome] += 1
        if report.transformed:
            self.stats["transformed"] += 1
        logger.debug(
            "top_level_await_analyzed",
            outcome=report.outcome.value,
            snippet_length=len(snippet),
            returns_last_expression=report.returns_last_expression,
        )
        return report

    def transform(self, snippet: str) -> Optional[str]:
        """Rewritten code for ``snippet``, or None to evaluate it unchanged."""
        return self.analyze(snippet).code

    def _remember(self, key: str, report: TransformReport) -> None:
        capacity = self.config.cache_size
        if not capacity:
            return
        self._cache[key] = report
        while len(self._cache) > capacity:
            self._cache.popitem(last=False)

    def clear_cache(self) -> int:
        """Drop cached results; returns how many were dropped."""
        count = len(self._cache)
        self._cache.clear()
        return count
