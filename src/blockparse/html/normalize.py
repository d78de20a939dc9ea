"""Markup equivalence used by the validator.

Two HTML strings are equivalent when they flatten to the same token stream.
This is a versioned contract: bump ``NORMALIZATION_VERSION`` whenever a rule
changes, since it changes which stored content counts as valid.

Version 2 rules:

- tag names lower-case, attribute order and quoting ignored
- ``class`` compared as a sorted set, ``style`` as a sorted property map
- valueless boolean attributes equal to their name (``disabled="disabled"``)
- ``<br>`` and ``<br/>`` equal
- whitespace-only text dropped at fragment top level and between block-level
  elements or comments inside a block-level parent; elsewhere it collapses to
  one space. Inside ``pre``, ``textarea``, ``script`` and ``style`` it is kept
  as is; other text compared exactly after entity decoding
- adjacent text merged, comments trimmed
- comments that are block delimiters compared by name, attributes and kind;
  an opener directly followed by its closer equals the void form
"""

from __future__ import annotations

import json
import logging
from typing import Any

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from blockparse.html.fragment import parse_fragment
from blockparse.parser.tokenizer import DEFAULT_NAMESPACE, DELIMITER_RE, decode_attributes

logger = logging.getLogger(__name__)

NORMALIZATION_VERSION = 2

HTML_WHITESPACE = " \t\n\r\f"

PRESERVE_WHITESPACE = frozenset({"pre", "textarea", "script", "style"})

BLOCK_LEVEL = frozenset(
    """
    address article aside blockquote caption dd details dialog div dl dt fieldset
    figcaption figure footer form h1 h2 h3 h4 h5 h6 header hgroup hr li main nav
    ol p pre section summary table tbody td tfoot th thead tr ul
    """.split()
)

NormalToken = tuple[Any, ...]


def _normalize_style(value: str) -> str:
    declarations = []
    for declaration in value.split(";"):
        prop, sep, val = declaration.partition(":")
        if not sep or not prop.strip():
            continue
        declarations.append((prop.strip().lower(), val.strip()))
    return ";".join(f"{prop}:{val}" for prop, val in sorted(declarations))


def _normalize_attributes(element: Tag) -> tuple[tuple[str, str], ...]:
    attrs: list[tuple[str, str]] = []
    for key, value in element.attrs.items():
        name = key.lower()
        if isinstance(value, list):
            value = " ".join(value)
        if value is None:
            value = ""
        if name == "class":
            classes = sorted(set(value.split()))
            if not classes:
                continue
            value = " ".join(classes)
        elif name == "style":
            value = _normalize_style(value)
            if not value:
                continue
        elif value == "" or value.lower() == name:
            value = name
        attrs.append((name, value))
    return tuple(sorted(attrs))


def _normalize_comment(text: str) -> NormalToken:
    match = DELIMITER_RE.fullmatch(f"<!--{text}-->")
    if match is None:
        return ("comment", text.strip())
    name = f"{match.group('namespace') or DEFAULT_NAMESPACE}/{match.group('name')}"
    payload = match.group("attrs")
    attrs: str | None = None
    if payload is not None:
        decoded, _error = decode_attributes(payload)
        attrs = json.dumps(decoded, sort_keys=True) if decoded is not None else payload
    kind = "void" if match.group("void") else ("close" if match.group("closer") else "open")
    return ("delimiter", kind, name, attrs if kind != "close" else None)


def _is_boundary(node: Any) -> bool:
    if node is None or isinstance(node, Comment):
        return True
    return isinstance(node, Tag) and node.name.lower() in BLOCK_LEVEL


def _is_boundary_whitespace(node: NavigableString) -> bool:
    """Whether whitespace-only ``node`` only separates blocks."""
    parent = node.parent
    if parent is None or isinstance(parent, BeautifulSoup):
        return True
    if parent.name.lower() not in BLOCK_LEVEL:
        return False
    return _is_boundary(node.previous_sibling) and _is_boundary(node.next_sibling)


def _append_comment(tokens: list[NormalToken], token: NormalToken) -> None:
    # "<!-- wp:x --><!-- /wp:x -->" is the same block as "<!-- wp:x /-->"
    if token[:2] == ("delimiter", "close") and tokens:
        last = tokens[-1]
        if last[:3] == ("delimiter", "open", token[2]):
            tokens[-1] = ("delimiter", "void", last[2], last[3])
            return
    tokens.append(token)


def tokens_of(soup: BeautifulSoup) -> list[NormalToken]:
    """Flatten a parsed fragment into normalized tokens without recursion."""
    tokens: list[NormalToken] = []
    # (node, preserve_whitespace) or (None, tag name) as an end marker
    stack: list[tuple[Any, Any]] = [
        (child, False) for child in reversed(list(soup.children))
    ]

    while stack:
        node, flag = stack.pop()
        if node is None:
            tokens.append(("end", flag))
            continue
        if isinstance(node, Tag):
            name = node.name.lower()
            tokens.append(("start", name, _normalize_attributes(node)))
            preserve = flag or name in PRESERVE_WHITESPACE
            stack.append((None, name))
            stack.extend((child, preserve) for child in reversed(list(node.children)))
        elif isinstance(node, Comment):
            _append_comment(tokens, _normalize_comment(str(node)))
        elif type(node) is NavigableString:
            text = str(node)
            if not flag and not text.strip(HTML_WHITESPACE):
                if _is_boundary_whitespace(node):
                    continue
                text = " "
            if tokens and tokens[-1][0] == "text":
                tokens[-1] = ("text", tokens[-1][1] + text)
            else:
                tokens.append(("text", text))
        elif isinstance(node, NavigableString):
            # Doctype, CData, processing instructions, declarations
            tokens.append(("other", type(node).__name__, str(node).strip()))
    return tokens


def normalize_markup(html: str, block_name: str | None = None) -> list[NormalToken]:
    """Normalized token stream of ``html``.

    Raises:
        HtmlFragmentError: If the fragment cannot be parsed
    """
    soup = parse_fragment(html, block_name, multi_valued_attributes=None)
    return tokens_of(soup)


def is_equivalent_markup(actual: str, expected: str) -> bool:
    """Whether two HTML strings are equivalent under the normalization rules."""
    if actual == expected:
        return True
    return normalize_markup(actual) == normalize_markup(expected)


def describe_difference(actual: str, expected: str) -> str | None:
    """A short description of the first differing token, or None if equivalent."""
    left = normalize_markup(actual)
    right = normalize_markup(expected)
    for index, (a, b) in enumerate(zip(left, right)):
        if a != b:
            return f"token {index}: expected {b!r}, got {a!r}"
    if len(left) != len(right):
        return f"expected {len(right)} tokens, got {len(left)}"
    return None


__all__ = [
    "NORMALIZATION_VERSION",
    "describe_difference",
    "is_equivalent_markup",
    "normalize_markup",
    "tokens_of",
]
