#!/usr/bin/env python3
"""replawait - top-level await rewrite for JavaScript REPL input."""

from __future__ import annotations

import sys

import structlog

from replawait.transform.config import TransformConfig
from replawait.transform.rewriter import TopLevelAwaitTransformer, transform

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

SNIPPETS = [
    "await 1",
    "let x = 1, y; const z = await Promise.resolve(x + 1)",
    "function f(){ var a = 1; return a } ; await f();",
    "class C {}; await C.name",
    "for (var k of [1, 2]) { await k }",
    "1 + 1",
    "return await 1",
    "await (",
]


def demo_transform(snippets: list[str]) -> None:
    """Show the rewrite of each snippet."""
    print("=== Rewrite Demo ===\n")
    for snippet in snippets:
        code = transform(snippet)
        print(f"in:  {snippet}")
        print(f"out: {code if code is not None else '(evaluate unchanged)'}")
        print("-" * 40)


def demo_transformer(snippets: list[str]) -> None:
    """Show reports and counters of a configured transformer."""
    print("\n=== Transformer Demo ===\n")
    transformer = TopLevelAwaitTransformer(TransformConfig(cache_size=16))

    for snippet in snippets + snippets[:2]:
        report = transformer.analyze(snippet)
        print(report.model_dump_json())

    print("\n" + "=" * 40)
    print("Transformer stats:")
    for name, value in transformer.stats.items():
        print(f"  {name}: {value}")
    for outcome, count in transformer.outcome_counts.items():
        print(f"  {outcome.value}: {count}")


def main() -> None:
    """Main entry point."""
    print("replawait - top-level await for JavaScript REPL input")
    print("=" * 40)

    snippets = sys.argv[1:] or SNIPPETS
    try:
        demo_transform(snippets)
        demo_transformer(snippets)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    except Exception as e:
        logger.error("Demo error", error=str(e), exc_info=True)


if __name__ == "__main__":
    main()
