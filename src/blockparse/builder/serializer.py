"""Serialize resolved blocks back into block-delimited markup.

Content always comes from ``inner_content`` with the ``None`` slots filled by
the serialized inner blocks, so unchanged blocks reproduce their source bytes.
Only the delimiters are regenerated, except an opener whose JSON was malformed,
which is written back as it was. Serialization runs on an explicit work
stack and handles trees of any depth.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from blockparse.model.nodes import ResolvedBlock
from blockparse.model.schema import AttributeSource
from blockparse.parser.tokenizer import DEFAULT_NAMESPACE, DELIMITER_RE
from blockparse.resolve.attributes import comment_attributes
from blockparse.resolve.fixes import effective_schemas
from blockparse.types import PostCallback, PreCallback

logger = logging.getLogger(__name__)

_CORE_PREFIX = f"{DEFAULT_NAMESPACE}/"

# JSON escape sequences; only \" and \\ are rewritten
_JSON_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)

_COMMENT_UNSAFE = ("<", ">", "&")


def _unicode_escape(ch: str) -> str:
    return "\\u%04x" % ord(ch)


def _rewrite_escape(match: re.Match[str]) -> str:
    body = match.group(1)
    if body in ('"', "\\"):
        return _unicode_escape(body)
    return match.group(0)


def serialize_attributes(attributes: Mapping[str, Any]) -> str:
    """JSON for a delimiter comment.

    Compact and unicode-preserving. ``--``, ``<``, ``>``, ``&``, escaped quotes
    and escaped backslashes are written as unicode escapes so the JSON can
    never end or confuse the surrounding comment.
    """
    text = json.dumps(attributes, ensure_ascii=False, separators=(",", ":"))
    text = _JSON_ESCAPE_RE.sub(_rewrite_escape, text)
    text = text.replace("--", _unicode_escape("-") * 2)
    for ch in _COMMENT_UNSAFE:
        text = text.replace(ch, _unicode_escape(ch))
    return text


def serialized_block_name(name: str) -> str:
    if name.startswith(_CORE_PREFIX):
        return name[len(_CORE_PREFIX) :]
    return name


def block_comment_attributes(block: ResolvedBlock) -> dict[str, Any] | None:
    """Attributes written into a block's opening delimiter."""
    definition = block.definition
    if definition is None or (not block.is_valid and block.migrated_from is None):
        return block.raw_attributes
    schemas = effective_schemas(definition)
    attributes = comment_attributes(schemas, block.attributes)
    if block.migrated_from is not None or not block.raw_attributes:
        return attributes

    # Keys spelled out in the source keep their position
    merged: dict[str, Any] = {}
    for key, value in block.raw_attributes.items():
        schema = schemas.get(key)
        if schema is None:
            merged[key] = value
        elif key in attributes:
            merged[key] = attributes.pop(key)
        elif schema.source is AttributeSource.DEFAULT and block.attributes.get(key) == value:
            merged[key] = value
    merged.update(attributes)
    return merged


def kept_opener(block: ResolvedBlock) -> str | None:
    """The source opener of a block whose JSON was malformed, unless migrated."""
    if block.opener_text is None or block.migrated_from is not None:
        return None
    return block.opener_text


def _is_void_opener(text: str) -> bool:
    match = DELIMITER_RE.fullmatch(text)
    return match is not None and match.group("void") is not None


def opening_delimiter(block: ResolvedBlock, *, void: bool = False) -> str:
    kept = kept_opener(block)
    if kept is not None:
        return kept
    name = serialized_block_name(block.name or "")
    attributes = block_comment_attributes(block)
    attrs = f"{serialize_attributes(attributes)} " if attributes else ""
    return f"<!-- wp:{name} {attrs}{'/' if void else ''}-->"


def closing_delimiter(block: ResolvedBlock) -> str:
    return f"<!-- /wp:{serialized_block_name(block.name or '')} -->"


def _content_items(block: ResolvedBlock) -> list[str | int]:
    """Inner content with each slot replaced by the index of its inner block."""
    items: list[str | int] = []
    inner_content = block.inner_content
    if not inner_content and block.inner_blocks:
        inner_content = (None,) * len(block.inner_blocks)
    slot = 0
    for chunk in inner_content:
        if chunk is None:
            if slot < len(block.inner_blocks):
                items.append(slot)
            slot += 1
        else:
            items.append(chunk)
    return items


def _has_content(items: list[str | int]) -> bool:
    return any(not isinstance(item, str) or item for item in items)


def traverse_and_serialize(
    blocks: Sequence[ResolvedBlock],
    pre_callback: PreCallback | None = None,
    post_callback: PostCallback | None = None,
) -> str:
    """Serialize ``blocks`` calling hooks around each block.

    ``pre_callback(block, parent, previous_sibling)`` output goes before the
    block's markup and ``post_callback(block, parent, next_sibling)`` output
    after it. Siblings and parents are None at the edges and at the root.
    """
    out: list[str] = []
    # Work items: str (literal output) or ("block"|"post", block, parent, siblings, index)
    stack: list[Any] = []

    def push_siblings(siblings: Sequence[ResolvedBlock], parent: ResolvedBlock | None) -> None:
        for index in range(len(siblings) - 1, -1, -1):
            stack.append(("block", siblings[index], parent, siblings, index))

    push_siblings(blocks, None)
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            out.append(item)
            continue
        kind, block, parent, siblings, index = item
        if kind == "post":
            following = siblings[index + 1] if index + 1 < len(siblings) else None
            out.append(post_callback(block, parent, following) or "")
            continue

        if pre_callback is not None:
            previous = siblings[index - 1] if index > 0 else None
            out.append(pre_callback(block, parent, previous) or "")
        if post_callback is not None:
            stack.append(("post", block, parent, siblings, index))

        items = _content_items(block)
        kept = kept_opener(block)
        void = _is_void_opener(kept) if kept is not None else not _has_content(items)
        if block.freeform:
            tail: list[Any] = []
        elif block.implicitly_closed:
            out.append(opening_delimiter(block))
            tail = []
        elif not void:
            out.append(opening_delimiter(block))
            tail = [closing_delimiter(block)]
        else:
            out.append(opening_delimiter(block, void=True))
            continue

        stack.extend(tail)
        children = block.inner_blocks
        for content in reversed(items):
            if isinstance(content, str):
                stack.append(content)
            else:
                stack.append(("block", children[content], block, children, content))
    return "".join(out)


def serialize(blocks: Sequence[ResolvedBlock]) -> str:
    """Serialize a sequence of resolved blocks."""
    return traverse_and_serialize(blocks)


def serialize_block(block: ResolvedBlock) -> str:
    return traverse_and_serialize([block])


__all__ = [
    "block_comment_attributes",
    "serialize",
    "serialize_attributes",
    "serialize_block",
    "serialized_block_name",
    "traverse_and_serialize",
]
