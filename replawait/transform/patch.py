"""Offset-addressed text patching.

Edits are recorded against offsets of the original text and applied in one
final pass, so edits never renumber each other. The buffer behaves like an
array of per-character slots where each slot may hold extra text:

- ``prepend`` puts text in front of a slot (in front of earlier prepends too),
- ``append`` puts text after a slot's content (after earlier appends),
- ``replace`` blanks a run of slots, including text attached to them, and
  stores the replacement in the first slot.

At any one boundary, text appended to the character before it comes out
ahead of text prepended to the character after it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


class _Span(Protocol):
    start_byte: int
    end_byte: int


# Text attached after the character that ends at a boundary
_AFTER = 0
# Text attached before the character that starts at a boundary
_BEFORE = 1


@dataclass(frozen=True)
class Edit:
    """One insertion at a boundary of the original text.

    ``order`` sorts insertions sharing a boundary and side; it is derived from
    the recording sequence so later prepends come first and later appends last.
    """

    offset: int
    side: int
    order: int
    text: str


@dataclass
class PatchBuffer:
    """Edit log over ``source`` (UTF-8 bytes, the offsets tree-sitter reports)."""

    source: bytes
    _edits: list[Edit] = field(default_factory=list)
    _deleted: list[tuple[int, int]] = field(default_factory=list)
    _seq: int = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def prepend(self, node: _Span, text: str) -> None:
        """Insert ``text`` immediately before ``node``."""
        self._insert_before(node.start_byte, text)

    def append(self, node: _Span, text: str) -> None:
        """Insert ``text`` immediately after ``node``."""
        self._edits.append(Edit(node.end_byte, _AFTER, self._next(), text))

    def replace(self, start: int, end: int, text: str) -> None:
        """Replace ``source[start:end]`` with ``text``.

        Anything previously attached inside the range is discarded. An empty
        range inserts ``text`` in front of the slot at ``start``.
        """
        if start > end:
            raise ValueError(f"invalid range [{start}, {end})")
        if start < end:
            self._edits = [
                edit
                for edit in self._edits
                if not (
                    (edit.side == _BEFORE and start <= edit.offset < end)
                    or (edit.side == _AFTER and start < edit.offset <= end)
                )
            ]
            self._deleted.append((start, end))
        self._insert_before(start, text)

    def _insert_before(self, offset: int, text: str) -> None:
        self._edits.append(Edit(offset, _BEFORE, -self._next(), text))

    @property
    def edits(self) -> list[Edit]:
        """Recorded insertions in application order."""
        return sorted(self._edits, key=lambda e: (e.offset, e.side, e.order))

    def render(self) -> str:
        """Apply every edit in a single pass and return the patched text."""
        parts: list[bytes] = []
        cursor = 0
        deleted = sorted(self._deleted)
        for edit in self.edits:
            parts.append(self._kept(cursor, edit.offset, deleted))
            parts.append(edit.text.encode("utf-8"))
            cursor = edit.offset
        parts.append(self._kept(cursor, len(self.source), deleted))
        return b"".join(parts).decode("utf-8")

    def _kept(self, start: int, end: int, deleted: list[tuple[int, int]]) -> bytes:
        """Return ``source[start:end]`` minus the deleted ranges."""
        if start >= end:
            return b""
        out: list[bytes] = []
        pos = start
        for del_start, del_end in deleted:
            if del_end <= pos or del_start >= end:
                continue
            if del_start > pos:
                out.append(self.source[pos:del_start])
            pos = max(pos, del_end)
            if pos >= end:
                break
        if pos < end:
            out.append(self.source[pos:end])
        return b"".join(out)
