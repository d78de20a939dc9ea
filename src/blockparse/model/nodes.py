"""Data model for tokens, parsed nodes and resolved blocks.

All classes here are immutable. ``RawBlockNode`` is created once per parse by
the tree builder; ``ResolvedBlock`` is derived from it by the resolver and a
migration always produces a new instance rather than mutating one.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from blockparse.model.schema import BlockTypeDefinition


class TokenKind(Enum):
    """Kinds of tokens produced by the tokenizer."""

    TEXT = "text"
    BLOCK_OPEN = "block-open"
    BLOCK_CLOSE = "block-close"
    BLOCK_SELF_CLOSING = "block-self-closing"


@dataclass(frozen=True, slots=True)
class Token:
    """A span of the source text.

    ``start``/``end`` are offsets into the source; ``text`` is the exact source
    slice so that joining all token texts reproduces the input.
    """

    kind: TokenKind
    start: int
    end: int
    text: str
    name: str | None = None
    attributes: dict[str, Any] | None = None
    json_error: str | None = None

    @property
    def is_delimiter(self) -> bool:
        return self.kind is not TokenKind.TEXT


@dataclass(frozen=True, slots=True, eq=False)
class RawBlockNode:
    """A node of the parsed tree before attribute resolution.

    ``name`` is None for freeform text runs at the root. ``inner_content``
    interleaves literal chunks with ``None`` slots, one per entry of
    ``inner_blocks`` and in the same order. ``opener_text`` keeps the source
    delimiter when its JSON could not be decoded (``json_error``).
    """

    name: str | None
    raw_attributes: dict[str, Any] | None
    inner_blocks: tuple[RawBlockNode, ...] = field(compare=False, repr=False)
    inner_html: str
    inner_content: tuple[str | None, ...]
    implicitly_closed: bool = False
    opener_text: str | None = None
    json_error: str | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RawBlockNode):
            return NotImplemented
        return same_tree(self, other)

    @property
    def is_freeform(self) -> bool:
        return self.name is None


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Why a block did not validate (or did only after fixes/migration)."""

    code: str
    message: str
    candidate: int | None = None

    def __str__(self) -> str:
        where = f" (deprecated[{self.candidate}])" if self.candidate is not None else ""
        return f"{self.code}{where}: {self.message}"


@dataclass(frozen=True, slots=True, eq=False)
class ResolvedBlock:
    """Final output of ``parse``.

    ``original_content`` is the verbatim inner HTML of the source block and is
    kept for every block, valid or not. ``inner_content`` drives
    serialization; it equals the source chunks unless a migration regenerated
    the markup. ``freeform`` marks root-level text runs, which serialize
    without delimiters. ``definition`` is the block type the attributes were
    resolved against, used to decide which of them go back into the comment.
    ``opener_text`` is the source opening delimiter, kept when its JSON was
    malformed so it can be written back unchanged.
    """

    name: str | None
    attributes: dict[str, Any]
    inner_blocks: tuple[ResolvedBlock, ...] = field(default=(), compare=False, repr=False)
    is_valid: bool = True
    original_content: str = ""
    migrated_from: int | None = None
    inner_content: tuple[str | None, ...] = ()
    raw_attributes: dict[str, Any] | None = None
    is_registered: bool = False
    implicitly_closed: bool = False
    freeform: bool = False
    opener_text: str | None = None
    issues: tuple[ValidationIssue, ...] = field(default=(), compare=False)
    definition: BlockTypeDefinition | None = field(default=None, compare=False, repr=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolvedBlock):
            return NotImplemented
        return same_tree(self, other)


def same_tree(left: Any, right: Any) -> bool:
    """Compare two trees by value with an explicit stack.

    Fields marked ``compare=False`` are ignored; ``inner_blocks`` is compared
    pairwise by the walk itself.
    """
    stack = [(left, right)]
    while stack:
        a, b = stack.pop()
        if a is b:
            continue
        if type(a) is not type(b):
            return False
        for f in fields(a):
            if f.compare and getattr(a, f.name) != getattr(b, f.name):
                return False
        if len(a.inner_blocks) != len(b.inner_blocks):
            return False
        stack.extend(zip(a.inner_blocks, b.inner_blocks))
    return True


def walk(blocks: tuple[Any, ...] | list[Any]) -> Iterator[tuple[int, Any]]:
    """Yield ``(depth, block)`` in document order without recursion.

    Works for both ``RawBlockNode`` and ``ResolvedBlock`` trees.
    """
    stack: list[tuple[int, Any]] = [(0, block) for block in reversed(blocks)]
    while stack:
        depth, block = stack.pop()
        yield depth, block
        stack.extend((depth + 1, child) for child in reversed(block.inner_blocks))


__all__ = [
    "RawBlockNode",
    "ResolvedBlock",
    "Token",
    "TokenKind",
    "ValidationIssue",
    "same_tree",
    "walk",
]
