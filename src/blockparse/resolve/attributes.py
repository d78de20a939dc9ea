"""Attribute extraction from comment JSON and block markup.

``extract_attributes`` resolves every declared attribute of a block. Comment
sourced attributes come from the delimiter's JSON; the others are read from
the block's own inner HTML through the fragment facility. Extraction is total:
a missing target, a value of the wrong type or an invalid selector all fall
back to the schema default. Only a failure to parse the fragment itself
escapes, as ``HtmlFragmentError``.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from bs4 import Tag
from soupsieve import SelectorSyntaxError

from blockparse.errors import ErrorContext, ErrorManager
from blockparse.html.fragment import (
    inner_html,
    outer_html,
    parse_fragment,
    select_all,
    select_first,
    text_content,
)
from blockparse.model.schema import AttributeSchema, AttributeSource, AttributeType

logger = logging.getLogger(__name__)

_MISSING = object()

_MARKUP_SOURCES = frozenset(
    {
        AttributeSource.ATTRIBUTE,
        AttributeSource.TEXT,
        AttributeSource.HTML,
        AttributeSource.QUERY,
        AttributeSource.TAG,
    }
)


def _matches_type(value: Any, attribute_type: AttributeType) -> bool:
    if attribute_type is AttributeType.NULL:
        return True
    if attribute_type is AttributeType.STRING:
        return isinstance(value, str)
    if attribute_type is AttributeType.BOOLEAN:
        return isinstance(value, bool)
    if attribute_type is AttributeType.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if attribute_type is AttributeType.INTEGER:
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    if attribute_type is AttributeType.OBJECT:
        return isinstance(value, dict)
    if attribute_type is AttributeType.ARRAY:
        return isinstance(value, list)
    return False


def is_valid_value(value: Any, schema: AttributeSchema) -> bool:
    """Whether ``value`` satisfies the schema's type and enum constraints."""
    types = schema.types
    if types and not any(_matches_type(value, t) for t in types):
        return False
    if schema.enum is not None and value not in schema.enum:
        return False
    return True


def _is_boolean(schema: AttributeSchema) -> bool:
    return schema.types == (AttributeType.BOOLEAN,)


def _from_element(schema: AttributeSchema, element: Tag) -> Any:
    source = schema.source
    if source is AttributeSource.ATTRIBUTE:
        if schema.attribute is None:
            return _MISSING
        value = element.get(schema.attribute)
        if _is_boolean(schema):
            return value is not None
        if value is None:
            return _MISSING
        if isinstance(value, list):
            return " ".join(value)
        return value
    if source is AttributeSource.TEXT:
        return text_content(element)
    if source is AttributeSource.HTML:
        if schema.multiline:
            tag = schema.multiline.lower()
            return "".join(
                outer_html(child)
                for child in element.children
                if isinstance(child, Tag) and child.name == tag
            )
        return inner_html(element)
    if source is AttributeSource.TAG:
        if element.parent is None:
            # The fragment container has no tag of its own
            return _MISSING
        return element.name.lower()
    return _MISSING


class AttributeExtractor:
    """Resolve a block's attributes against a set of schemas.

    The fragment is parsed at most once, and only if a markup source needs it.
    """

    def __init__(
        self,
        inner_html: str,
        raw_attributes: Mapping[str, Any] | None,
        *,
        block_name: str | None = None,
        errors: ErrorManager | None = None,
    ) -> None:
        self.inner_html = inner_html
        self.raw_attributes = raw_attributes or {}
        self.block_name = block_name
        self.errors = errors or ErrorManager(
            ErrorContext(block_name=block_name, source_module=__name__)
        )
        self._root: Tag | None = None

    @property
    def root(self) -> Tag:
        if self._root is None:
            self._root = parse_fragment(self.inner_html, self.block_name)
        return self._root

    def extract(self, schemas: Mapping[str, AttributeSchema]) -> dict[str, Any]:
        attributes: dict[str, Any] = {}
        for name, schema in schemas.items():
            if schema.source in _MARKUP_SOURCES:
                value = self._extract_from_markup(name, schema, self.root)
            elif schema.source is AttributeSource.RAW:
                value = self.inner_html
            else:
                value = self.raw_attributes.get(name, _MISSING)
                if isinstance(value, (dict, list)):
                    value = copy.deepcopy(value)
            value = self._finalize(value, schema)
            if value is not None:
                attributes[name] = value
        return attributes

    def _finalize(self, value: Any, schema: AttributeSchema) -> Any:
        if value is _MISSING or not is_valid_value(value, schema):
            return copy.deepcopy(schema.default)
        return value

    def _extract_from_markup(self, name: str, schema: AttributeSchema, scope: Tag) -> Any:
        try:
            if schema.source is AttributeSource.QUERY:
                return [
                    self._extract_nested(schema.query or {}, element)
                    for element in select_all(scope, schema.selector)
                ]
            element = select_first(scope, schema.selector)
        except SelectorSyntaxError as exc:
            self.errors.warn(
                "ATTR-001",
                f"Invalid selector {schema.selector!r} for attribute '{name}', using default",
                extra={"attribute": name},
                exception=exc,
            )
            return _MISSING
        if element is None:
            return _MISSING
        return _from_element(schema, element)

    def _extract_nested(self, schemas: Mapping[str, AttributeSchema], element: Tag) -> dict[str, Any]:
        entry: dict[str, Any] = {}
        for name, schema in schemas.items():
            if schema.source in _MARKUP_SOURCES:
                value = self._extract_from_markup(name, schema, element)
            elif schema.source is AttributeSource.RAW:
                value = outer_html(element)
            else:
                value = _MISSING
            value = self._finalize(value, schema)
            if value is not None:
                entry[name] = value
        return entry


def extract_attributes(
    schemas: Mapping[str, AttributeSchema],
    inner_html: str,
    raw_attributes: Mapping[str, Any] | None,
    *,
    block_name: str | None = None,
    errors: ErrorManager | None = None,
) -> dict[str, Any]:
    """Resolve ``schemas`` against a block's markup and comment attributes.

    Raises:
        HtmlFragmentError: If the markup cannot be parsed as a fragment
    """
    extractor = AttributeExtractor(
        inner_html, raw_attributes, block_name=block_name, errors=errors
    )
    return extractor.extract(schemas)


def comment_attributes(
    schemas: Mapping[str, AttributeSchema], attributes: Mapping[str, Any]
) -> dict[str, Any]:
    """The comment-sourced attributes whose value differs from the default, in schema order."""
    result: dict[str, Any] = {}
    for name, schema in schemas.items():
        if schema.source is not AttributeSource.DEFAULT or name not in attributes:
            continue
        value = attributes[name]
        if value is None or value == schema.default:
            continue
        result[name] = value
    return result


__all__ = [
    "AttributeExtractor",
    "comment_attributes",
    "extract_attributes",
    "is_valid_value",
]
