"""HTML fragment facility backed by BeautifulSoup.

The pipeline never parses HTML itself; it goes through these helpers, which
wrap ``BeautifulSoup(html, "html.parser")`` and soupsieve selectors. Any
failure of the underlying parser surfaces as ``HtmlFragmentError``.
"""

from __future__ import annotations

import logging
from typing import Any

from bs4 import BeautifulSoup, Tag

from blockparse.errors import HtmlFragmentError

logger = logging.getLogger(__name__)

PARSER = "html.parser"


def parse_fragment(html: str, block_name: str | None = None, **kwargs: Any) -> BeautifulSoup:
    """Parse ``html`` as a fragment.

    Raises:
        HtmlFragmentError: If BeautifulSoup rejects the markup
    """
    try:
        return BeautifulSoup(html, PARSER, **kwargs)
    except Exception as exc:  # bs4 raises ParserRejectedMarkup and assorted parser errors
        raise HtmlFragmentError(block_name, exc) from exc


def select_first(root: Tag, selector: str | None) -> Tag | None:
    """First element matching ``selector`` in document order, or the root itself."""
    if selector is None:
        return root
    return root.select_one(selector)


def select_all(root: Tag, selector: str | None) -> list[Tag]:
    if selector is None:
        return [child for child in root.children if isinstance(child, Tag)]
    return list(root.select(selector))


def root_element(root: Tag) -> Tag | None:
    """The first top-level element of a fragment."""
    for child in root.children:
        if isinstance(child, Tag):
            return child
    return None


def inner_html(element: Tag) -> str:
    return element.decode_contents()


def outer_html(element: Tag) -> str:
    return str(element)


def text_content(element: Tag) -> str:
    return element.get_text()


def class_list(element: Tag) -> list[str]:
    value = element.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


def apply_root_attributes(
    html: str,
    *,
    class_name: str | None = None,
    anchor: str | None = None,
    aria_label: str | None = None,
    block_name: str | None = None,
) -> str:
    """Add classes, an id and an ``aria-label`` to the root element of ``html``.

    Returns ``html`` unchanged when there is nothing to apply or no root element.
    """
    if not class_name and not anchor and not aria_label:
        return html
    soup = parse_fragment(html, block_name)
    element = root_element(soup)
    if element is None:
        return html
    if class_name:
        classes = class_list(element)
        for name in class_name.split():
            if name not in classes:
                classes.append(name)
        element["class"] = classes
    if anchor:
        element["id"] = anchor
    if aria_label:
        element["aria-label"] = aria_label
    return str(soup)


__all__ = [
    "PARSER",
    "apply_root_attributes",
    "class_list",
    "inner_html",
    "outer_html",
    "parse_fragment",
    "root_element",
    "select_all",
    "select_first",
    "text_content",
]
