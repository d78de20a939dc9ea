"""blockparse - parse block-delimited HTML into validated blocks and back."""

from __future__ import annotations

from blockparse.builder.registry import BlockTypeRegistry
from blockparse.builder.serializer import serialize, serialize_block, traverse_and_serialize
from blockparse.html.normalize import NORMALIZATION_VERSION, is_equivalent_markup
from blockparse.model.nodes import RawBlockNode, ResolvedBlock, Token, TokenKind, ValidationIssue
from blockparse.model.options import ParserOptions
from blockparse.model.schema import (
    AttributeSchema,
    AttributeSource,
    AttributeType,
    BlockTypeDefinition,
    DeprecatedVersion,
)
from blockparse.parser.tokenizer import tokenize
from blockparse.pipeline import parse, parse_raw

__version__ = "0.1.0"

__all__ = [
    "NORMALIZATION_VERSION",
    "AttributeSchema",
    "AttributeSource",
    "AttributeType",
    "BlockTypeDefinition",
    "BlockTypeRegistry",
    "DeprecatedVersion",
    "ParserOptions",
    "RawBlockNode",
    "ResolvedBlock",
    "Token",
    "TokenKind",
    "ValidationIssue",
    "__version__",
    "is_equivalent_markup",
    "parse",
    "parse_raw",
    "serialize",
    "serialize_block",
    "tokenize",
    "traverse_and_serialize",
]
