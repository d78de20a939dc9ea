"""Stack machine that turns the token stream into a forest of RawBlockNodes.

Nesting is tracked on an explicit list of frames, so the depth of the input is
bounded by ``ParserOptions.max_depth`` rather than by the interpreter stack.
Recovery rules for malformed nesting:

- A closer with no open frame of that name stays literal text.
- A closer that matches a frame below the top flattens the frames above the
  match: their source span, from the first skipped opener up to the closer,
  becomes text of the matching frame.
- Frames still open at end of input are closed implicitly, innermost first.
- Openers deeper than ``max_depth`` stay literal text, and so do their closers.

No source byte is ever dropped: every token ends up either as a node boundary
or inside some node's inner content.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from blockparse.decision_logger import log_error_policy
from blockparse.errors import ErrorContext, ErrorManager
from blockparse.model.nodes import RawBlockNode, Token, TokenKind
from blockparse.model.options import DEFAULT_MAX_DEPTH
from blockparse.parser.tokenizer import tokenize

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Frame:
    name: str | None
    attributes: dict[str, Any] | None
    start: int
    token: Token | None = None
    blocks: list[RawBlockNode] = field(default_factory=list)
    chunks: list[str | None] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)

    def add_text(self, text: str) -> None:
        if text:
            self.pending.append(text)

    def flush(self) -> None:
        if self.pending:
            self.chunks.append("".join(self.pending))
            self.pending.clear()

    def add_block(self, node: RawBlockNode) -> None:
        self.flush()
        self.blocks.append(node)
        self.chunks.append(None)

    def finish(self, implicitly_closed: bool = False) -> RawBlockNode:
        self.flush()
        inner_html = "".join(chunk for chunk in self.chunks if chunk is not None)
        return RawBlockNode(
            name=self.name,
            raw_attributes=self.attributes,
            inner_blocks=tuple(self.blocks),
            inner_html=inner_html,
            inner_content=tuple(self.chunks),
            implicitly_closed=implicitly_closed,
            **malformed_opener(self.token),
        )


def malformed_opener(token: Token | None) -> dict[str, str]:
    """Node fields that keep an opener whose JSON could not be decoded."""
    if token is None or token.json_error is None:
        return {}
    return {"opener_text": token.text, "json_error": token.json_error}


def freeform_node(text: str) -> RawBlockNode:
    return RawBlockNode(
        name=None,
        raw_attributes=None,
        inner_blocks=(),
        inner_html=text,
        inner_content=(text,),
    )


class TreeBuilder:
    """Consume tokens of one source string and build the raw forest."""

    def __init__(self, source: str, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.source = source
        self.max_depth = max_depth
        self.errors = ErrorManager(ErrorContext(source_module=__name__))
        self._stack: list[_Frame] = []
        self._output: list[RawBlockNode] = []
        self._root_text: list[str] = []
        # Openers kept as text beyond max_depth, by name
        self._suppressed: dict[str | None, int] = {}

    def _add_text(self, text: str) -> None:
        if self._stack:
            self._stack[-1].add_text(text)
        elif text:
            self._root_text.append(text)

    def _flush_root_text(self) -> None:
        if self._root_text:
            self._output.append(freeform_node("".join(self._root_text)))
            self._root_text.clear()

    def _add_block(self, node: RawBlockNode) -> None:
        if self._stack:
            self._stack[-1].add_block(node)
        else:
            self._flush_root_text()
            self._output.append(node)

    def _close_top(self, implicitly_closed: bool = False) -> None:
        frame = self._stack.pop()
        self._add_block(frame.finish(implicitly_closed))

    def _find_frame(self, name: str | None) -> int:
        for index in range(len(self._stack) - 1, -1, -1):
            if self._stack[index].name == name:
                return index
        return -1

    def _open(self, token: Token) -> None:
        if len(self._stack) >= self.max_depth:
            self.errors.warn(
                "TREE-004",
                f"Nesting deeper than {self.max_depth}, keeping {token.name} opener as text",
                extra={"offset": token.start, "max_depth": self.max_depth},
            )
            self._suppressed[token.name] = self._suppressed.get(token.name, 0) + 1
            self._add_text(token.text)
            return
        self._stack.append(_Frame(token.name, token.attributes, token.start, token))

    def _self_closing(self, token: Token) -> None:
        if len(self._stack) >= self.max_depth:
            self.errors.warn(
                "TREE-004",
                f"Nesting deeper than {self.max_depth}, keeping {token.name} as text",
                extra={"offset": token.start, "max_depth": self.max_depth},
            )
            self._add_text(token.text)
            return
        self._add_block(
            RawBlockNode(
                name=token.name,
                raw_attributes=token.attributes,
                inner_blocks=(),
                inner_html="",
                inner_content=(),
                **malformed_opener(token),
            )
        )

    def _close(self, token: Token) -> None:
        if self._suppressed.get(token.name):
            self._suppressed[token.name] -= 1
            self.errors.debug(
                "TREE-004",
                f"Keeping closer of a {token.name} opener beyond {self.max_depth} as text",
                extra={"offset": token.start},
            )
            self._add_text(token.text)
            return
        index = self._find_frame(token.name)
        if index < 0:
            self.errors.warn(
                "TREE-001",
                f"Closer for {token.name} has no open block, keeping it as text",
                extra={"offset": token.start},
            )
            log_error_policy("tree", "orphan_closer", "keep_as_text", token.name)
            self._add_text(token.text)
            return

        top = len(self._stack) - 1
        if index < top:
            skipped = self._stack[index + 1 :]
            self.errors.warn(
                "TREE-002",
                f"Closer for {token.name} skips {len(skipped)} open block(s), "
                f"flattening them to text",
                extra={
                    "offset": token.start,
                    "skipped": [frame.name for frame in skipped],
                },
            )
            log_error_policy("tree", "mismatched_closer", "flatten_to_text", token.name)
            flattened = self.source[skipped[0].start : token.start]
            del self._stack[index + 1 :]
            self._stack[-1].add_text(flattened)
        self._close_top()

    def feed(self, tokens: list[Token]) -> None:
        for token in tokens:
            if token.kind is TokenKind.TEXT:
                self._add_text(token.text)
            elif token.kind is TokenKind.BLOCK_OPEN:
                self._open(token)
            elif token.kind is TokenKind.BLOCK_SELF_CLOSING:
                self._self_closing(token)
            else:
                self._close(token)

    def finish(self) -> list[RawBlockNode]:
        """Close what is still open and return the forest."""
        if self._stack:
            self.errors.warn(
                "TREE-003",
                f"{len(self._stack)} block(s) left open at end of input, closing implicitly",
                extra={"open": [frame.name for frame in self._stack[-10:]]},
            )
        while self._stack:
            self._close_top(implicitly_closed=True)
        self._flush_root_text()
        output, self._output = self._output, []
        return output


def build_tree(
    source: str,
    tokens: list[Token] | None = None,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[RawBlockNode]:
    """Tokenize (unless tokens are given) and build the raw block forest."""
    if tokens is None:
        tokens = tokenize(source)
    builder = TreeBuilder(source, max_depth=max_depth)
    builder.feed(tokens)
    return builder.finish()


__all__ = [
    "TreeBuilder",
    "build_tree",
    "freeform_node",
    "malformed_opener",
]
