"""Top-level parse entry points.

``parse_raw`` runs the tokenizer and tree builder only. ``parse`` also
resolves every node against a registry. Neither raises for string input;
problems are recovered and reported through logging and on the blocks.
"""

from __future__ import annotations

import logging

from blockparse.model.nodes import RawBlockNode, ResolvedBlock
from blockparse.model.options import ParserOptions
from blockparse.parser.tokenizer import tokenize
from blockparse.parser.tree_builder import build_tree
from blockparse.resolve.resolver import BlockResolver
from blockparse.types import BlockTypeLookup

logger = logging.getLogger(__name__)


def parse_raw(source: str, options: ParserOptions | None = None) -> list[RawBlockNode]:
    """Parse ``source`` into raw block nodes without resolving them."""
    options = options or ParserOptions()
    tokens = tokenize(source)
    return build_tree(source, tokens, max_depth=options.max_depth)


def parse(
    source: str,
    registry: BlockTypeLookup,
    options: ParserOptions | None = None,
) -> list[ResolvedBlock]:
    """Parse ``source`` into resolved blocks.

    Args:
        source: Block-delimited markup
        registry: Anything with a ``lookup(name)`` method returning a
            ``BlockTypeDefinition`` or None
        options: Parser options, defaults to ``ParserOptions()``

    Returns:
        Resolved top-level blocks in source order
    """
    options = options or ParserOptions()
    nodes = parse_raw(source, options)
    logger.debug("Parsed %d top-level nodes from %d characters", len(nodes), len(source))
    return BlockResolver(registry, options).resolve_all(nodes)


__all__ = [
    "parse",
    "parse_raw",
]
