"""Block type definitions and attribute schemas.

These objects are supplied by the caller through a registry and are consumed
read-only by the pipeline.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AttributeSource(Enum):
    """Where an attribute value is read from."""

    DEFAULT = "default"  # Comment JSON, keyed by attribute name
    ATTRIBUTE = "attribute"  # HTML attribute of the matched element
    TEXT = "text"  # Text content of the matched element
    HTML = "html"  # Inner HTML of the matched element
    QUERY = "query"  # One nested attribute set per matched element
    RAW = "raw"  # The block's whole inner HTML
    TAG = "tag"  # Lower-case tag name of the matched element


class AttributeType(Enum):
    """Declared value types; ``NULL`` passes any value through unchecked."""

    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"
    INTEGER = "integer"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"


SaveFunction = Callable[[Mapping[str, Any]], str]
MigrateFunction = Callable[[dict[str, Any]], dict[str, Any]]
EligibilityFunction = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True, slots=True)
class AttributeSchema:
    """How one attribute is typed, sourced and defaulted.

    ``selector`` is a CSS selector scoped to the block's own markup. When it is
    None the whole fragment is the target. ``query`` holds the nested schemas
    for ``AttributeSource.QUERY``. ``multiline`` restricts an ``html`` source
    to the matched element's direct children with that tag.
    """

    type: AttributeType | tuple[AttributeType, ...] | None = None
    source: AttributeSource = AttributeSource.DEFAULT
    selector: str | None = None
    attribute: str | None = None
    multiline: str | None = None
    query: Mapping[str, AttributeSchema] | None = None
    default: Any = None
    enum: tuple[Any, ...] | None = None

    @property
    def types(self) -> tuple[AttributeType, ...]:
        if self.type is None:
            return ()
        if isinstance(self.type, tuple):
            return self.type
        return (self.type,)

    @property
    def has_default(self) -> bool:
        return self.default is not None


@dataclass(frozen=True, slots=True)
class DeprecatedVersion:
    """An older schema and save function, newest first in a definition.

    ``attributes`` of None inherits the current schemas; ``migrate`` of None is
    the identity.
    """

    save: SaveFunction
    attributes: Mapping[str, AttributeSchema] | None = None
    migrate: MigrateFunction | None = None
    is_eligible: EligibilityFunction | None = None


@dataclass(frozen=True, slots=True)
class BlockTypeDefinition:
    name: str
    attributes: Mapping[str, AttributeSchema]
    save: SaveFunction
    deprecated: tuple[DeprecatedVersion, ...] = ()
    supports_custom_class_name: bool = True
    supports_anchor: bool = False
    supports_aria_label: bool = False
    title: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)


__all__ = [
    "AttributeSchema",
    "AttributeSource",
    "AttributeType",
    "BlockTypeDefinition",
    "DeprecatedVersion",
    "EligibilityFunction",
    "MigrateFunction",
    "SaveFunction",
]
