"""Tokenizer and tree builder for block-delimited markup."""

from __future__ import annotations

from blockparse.parser.tokenizer import tokenize
from blockparse.parser.tree_builder import build_tree

__all__ = [
    "build_tree",
    "tokenize",
]
