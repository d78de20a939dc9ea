"""Tokenizer for block comment delimiters.

Scans the source once and emits a flat list of tokens covering every byte of
the input: text runs and block delimiters. A comment that does not match the
delimiter grammar is literal text. Malformed JSON inside braces keeps the
delimiter but drops its attributes; the token text is carried on the node so
the opener can be written back unchanged.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from blockparse.errors import ErrorContext, ErrorManager
from blockparse.model.nodes import Token, TokenKind

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "core"

_NAME = r"[a-z][a-z0-9_-]*"

# The JSON span is the shortest brace-delimited run that does not contain
# "-->" and is followed by the delimiter end; nested objects are allowed.
DELIMITER_RE = re.compile(
    r"<!--\s+(?P<closer>/)?wp:"
    rf"(?:(?P<namespace>{_NAME})/)?(?P<name>{_NAME})"
    r"(?:\s+(?P<attrs>\{(?:(?!-->).)*?\}))?"
    r"\s*(?P<void>/)?-->",
    re.DOTALL,
)


def _reject_constant(value: str) -> Any:
    raise ValueError(f"Invalid JSON constant {value}")


def decode_attributes(payload: str) -> tuple[dict[str, Any] | None, str | None]:
    """Decode a delimiter's JSON payload.

    Returns ``(attributes, None)`` on success and ``(None, message)`` when the
    payload is not a valid JSON object.
    """
    try:
        value = json.loads(payload, parse_constant=_reject_constant)
    except ValueError as exc:
        return None, str(exc)
    if not isinstance(value, dict):
        return None, f"Expected a JSON object, got {type(value).__name__}"
    return value, None


def _full_name(namespace: str | None, name: str) -> str:
    return f"{namespace or DEFAULT_NAMESPACE}/{name}"


def tokenize(source: str) -> list[Token]:
    """Split ``source`` into text and delimiter tokens.

    Never raises for string input. ``"".join(t.text for t in tokens) == source``.
    """
    errors = ErrorManager(ErrorContext(source_module=__name__))
    tokens: list[Token] = []
    position = 0

    for match in DELIMITER_RE.finditer(source):
        start, end = match.span()
        if start > position:
            tokens.append(Token(TokenKind.TEXT, position, start, source[position:start]))

        name = _full_name(match.group("namespace"), match.group("name"))
        is_closer = match.group("closer") is not None
        is_void = match.group("void") is not None
        payload = match.group("attrs")

        attributes: dict[str, Any] | None = None
        json_error: str | None = None
        if payload is not None:
            attributes, json_error = decode_attributes(payload)
            if json_error is not None:
                errors.debug(
                    "TOK-001",
                    f"Malformed attributes on {name}, treating as absent",
                    extra={"offset": start, "json_error": json_error},
                )

        if is_void:
            # "<!-- /wp:x /-->" is read as a void block
            kind = TokenKind.BLOCK_SELF_CLOSING
        elif is_closer:
            kind = TokenKind.BLOCK_CLOSE
            attributes = None
        else:
            kind = TokenKind.BLOCK_OPEN

        tokens.append(
            Token(
                kind,
                start,
                end,
                source[start:end],
                name=name,
                attributes=attributes,
                json_error=json_error,
            )
        )
        position = end

    if position < len(source):
        tokens.append(Token(TokenKind.TEXT, position, len(source), source[position:]))

    return tokens


__all__ = [
    "DEFAULT_NAMESPACE",
    "DELIMITER_RE",
    "decode_attributes",
    "tokenize",
]
