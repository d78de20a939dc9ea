"""A small library of core block types.

These definitions back the CLI and the test-suite. They follow the markup of
the corresponding editor blocks closely enough to exercise every attribute
source, container blocks and deprecations, without aiming for completeness.
"""

from __future__ import annotations

import html
from collections.abc import Mapping
from typing import Any

from blockparse.builder.registry import BlockTypeRegistry
from blockparse.model.schema import (
    AttributeSchema,
    AttributeSource,
    AttributeType,
    BlockTypeDefinition,
    DeprecatedVersion,
)

S = AttributeSource
T = AttributeType


def _attr(name: str, value: Any) -> str:
    if value is None or value == "":
        return ""
    return f' {name}="{html.escape(str(value), quote=True)}"'


# Paragraph

PARAGRAPH_ATTRIBUTES = {
    "content": AttributeSchema(type=T.STRING, source=S.HTML, selector="p", default=""),
    "dropCap": AttributeSchema(type=T.BOOLEAN, default=False),
}


def _paragraph_save(drop_cap_class: str):
    def save(attributes: Mapping[str, Any]) -> str:
        class_name = drop_cap_class if attributes.get("dropCap") else None
        return f"<p{_attr('class', class_name)}>{attributes.get('content', '')}</p>"

    return save


PARAGRAPH = BlockTypeDefinition(
    name="core/paragraph",
    title="Paragraph",
    attributes=PARAGRAPH_ATTRIBUTES,
    save=_paragraph_save("has-drop-cap"),
    supports_anchor=True,
    deprecated=(DeprecatedVersion(save=_paragraph_save("is-drop-cap")),),
)


# Heading

def _heading_save(attributes: Mapping[str, Any]) -> str:
    level = attributes.get("level", 2)
    return f"<h{level}>{attributes.get('content', '')}</h{level}>"


HEADING = BlockTypeDefinition(
    name="core/heading",
    title="Heading",
    attributes={
        "content": AttributeSchema(
            type=T.STRING, source=S.HTML, selector="h1,h2,h3,h4,h5,h6", default=""
        ),
        "level": AttributeSchema(type=T.INTEGER, default=2, enum=(1, 2, 3, 4, 5, 6)),
    },
    save=_heading_save,
    supports_anchor=True,
)


# Separator: comment-only since the current version; older content carries an <hr>

SEPARATOR = BlockTypeDefinition(
    name="core/separator",
    title="Separator",
    attributes={},
    save=lambda attributes: "",
    supports_custom_class_name=False,
    deprecated=(
        DeprecatedVersion(save=lambda attributes: '<hr class="wp-block-separator"/>'),
    ),
)


# Quote (container)

def _quote_save(attributes: Mapping[str, Any]) -> str:
    citation = attributes.get("citation")
    cite = f"<cite>{citation}</cite>" if citation else ""
    return f'<blockquote class="wp-block-quote">{cite}</blockquote>'


QUOTE = BlockTypeDefinition(
    name="core/quote",
    title="Quote",
    attributes={
        "citation": AttributeSchema(type=T.STRING, source=S.HTML, selector="cite", default=""),
    },
    save=_quote_save,
    supports_anchor=True,
)


# Group (container)

GROUP_TAGS = ("div", "section", "main", "article", "aside", "header", "footer")


def _group_save(attributes: Mapping[str, Any]) -> str:
    tag = attributes.get("tagName", "div")
    return f'<{tag} class="wp-block-group"></{tag}>'


GROUP = BlockTypeDefinition(
    name="core/group",
    title="Group",
    attributes={
        "tagName": AttributeSchema(type=T.STRING, default="div", enum=GROUP_TAGS),
    },
    save=_group_save,
    supports_anchor=True,
)


# Image

def _image_save(attributes: Mapping[str, Any]) -> str:
    image_id = attributes.get("id")
    img_class = f"wp-image-{image_id}" if image_id is not None else None
    caption = attributes.get("caption")
    figcaption = f"<figcaption>{caption}</figcaption>" if caption else ""
    img = (
        f"<img{_attr('src', attributes.get('url'))}"
        f' alt="{html.escape(attributes.get("alt", ""), quote=True)}"'
        f"{_attr('class', img_class)}/>"
    )
    return f'<figure class="wp-block-image">{img}{figcaption}</figure>'


IMAGE = BlockTypeDefinition(
    name="core/image",
    title="Image",
    attributes={
        "url": AttributeSchema(type=T.STRING, source=S.ATTRIBUTE, selector="img", attribute="src"),
        "alt": AttributeSchema(
            type=T.STRING, source=S.ATTRIBUTE, selector="img", attribute="alt", default=""
        ),
        "caption": AttributeSchema(
            type=T.STRING, source=S.HTML, selector="figcaption", default=""
        ),
        "id": AttributeSchema(type=T.INTEGER),
    },
    save=_image_save,
    supports_anchor=True,
)


# List

def _list_save(attributes: Mapping[str, Any]) -> str:
    tag = "ol" if attributes.get("ordered") else "ul"
    return f"<{tag}>{attributes.get('values', '')}</{tag}>"


LIST = BlockTypeDefinition(
    name="core/list",
    title="List",
    attributes={
        "ordered": AttributeSchema(type=T.BOOLEAN, default=False),
        "values": AttributeSchema(
            type=T.STRING, source=S.HTML, selector="ol,ul", multiline="li", default=""
        ),
    },
    save=_list_save,
)


# Freeform (classic content); used with ParserOptions.freeform_block_name

FREEFORM = BlockTypeDefinition(
    name="core/freeform",
    title="Classic",
    attributes={
        "content": AttributeSchema(type=T.STRING, source=S.RAW, default=""),
    },
    save=lambda attributes: attributes.get("content", ""),
    supports_custom_class_name=False,
)


CORE_BLOCKS = (PARAGRAPH, HEADING, SEPARATOR, QUOTE, GROUP, IMAGE, LIST, FREEFORM)


def build_core_registry() -> BlockTypeRegistry:
    """A fresh registry holding the core block types."""
    return BlockTypeRegistry(CORE_BLOCKS)


__all__ = [
    "CORE_BLOCKS",
    "build_core_registry",
]
