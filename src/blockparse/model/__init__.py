"""Data model for blockparse."""

from blockparse.model.nodes import RawBlockNode, ResolvedBlock, Token, TokenKind, ValidationIssue
from blockparse.model.options import ParserOptions
from blockparse.model.schema import (
    AttributeSchema,
    AttributeSource,
    AttributeType,
    BlockTypeDefinition,
    DeprecatedVersion,
)

__all__ = [
    "AttributeSchema",
    "AttributeSource",
    "AttributeType",
    "BlockTypeDefinition",
    "DeprecatedVersion",
    "ParserOptions",
    "RawBlockNode",
    "ResolvedBlock",
    "Token",
    "TokenKind",
    "ValidationIssue",
]
