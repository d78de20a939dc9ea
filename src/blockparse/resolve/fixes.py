"""Built-in validation fixes and the implicit attributes they rely on.

Blocks that support custom class names, anchors or aria labels get implicit
``className``/``anchor``/``ariaLabel`` attributes. They are applied to the
root element of the ``save`` output, and recovered from the stored markup when
a block would otherwise fail validation only because of them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from blockparse.html.fragment import (
    apply_root_attributes,
    class_list,
    parse_fragment,
    root_element,
)
from blockparse.model.schema import (
    AttributeSchema,
    AttributeType,
    BlockTypeDefinition,
    SaveFunction,
)

logger = logging.getLogger(__name__)

CLASS_NAME = "className"
ANCHOR = "anchor"
ARIA_LABEL = "ariaLabel"

_IMPLICIT_STRING = AttributeSchema(type=AttributeType.STRING)

Renderer = Callable[[Mapping[str, Any]], str]


def effective_schemas(
    definition: BlockTypeDefinition,
    schemas: Mapping[str, AttributeSchema] | None = None,
) -> dict[str, AttributeSchema]:
    """Declared schemas plus the implicit ones the definition supports."""
    result = dict(definition.attributes if schemas is None else schemas)
    if definition.supports_custom_class_name and CLASS_NAME not in result:
        result[CLASS_NAME] = _IMPLICIT_STRING
    if definition.supports_aria_label and ARIA_LABEL not in result:
        result[ARIA_LABEL] = _IMPLICIT_STRING
    if definition.supports_anchor and ANCHOR not in result:
        result[ANCHOR] = _IMPLICIT_STRING
    return result


def _string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def render_save(
    definition: BlockTypeDefinition,
    save: SaveFunction,
    attributes: Mapping[str, Any],
) -> str:
    """Call ``save`` and apply the implicit attributes to its root element."""
    html = save(attributes)
    class_name = attributes.get(CLASS_NAME) if definition.supports_custom_class_name else None
    anchor = attributes.get(ANCHOR) if definition.supports_anchor else None
    aria_label = attributes.get(ARIA_LABEL) if definition.supports_aria_label else None
    return apply_root_attributes(
        html,
        class_name=_string_or_none(class_name),
        anchor=_string_or_none(anchor),
        aria_label=_string_or_none(aria_label),
        block_name=definition.name,
    )


def _root_of(html: str, block_name: str) -> Any:
    return root_element(parse_fragment(html, block_name))


def fix_custom_class_name(
    definition: BlockTypeDefinition,
    attributes: Mapping[str, Any],
    stored_html: str,
    render: Renderer,
) -> dict[str, Any]:
    """Move classes the ``save`` output lacks into ``className``."""
    fixed = dict(attributes)
    if not definition.supports_custom_class_name:
        return fixed
    stored_root = _root_of(stored_html, definition.name)
    if stored_root is None:
        return fixed
    without = {k: v for k, v in attributes.items() if k != CLASS_NAME}
    saved_root = _root_of(render(without), definition.name)
    saved_classes = set(class_list(saved_root)) if saved_root is not None else set()
    custom = [name for name in class_list(stored_root) if name not in saved_classes]
    if custom:
        fixed[CLASS_NAME] = " ".join(custom)
    else:
        fixed.pop(CLASS_NAME, None)
    return fixed


def fix_root_attribute(
    attributes: Mapping[str, Any],
    stored_html: str,
    key: str,
    html_attribute: str,
    block_name: str,
) -> dict[str, Any]:
    """Take ``key`` from an attribute of the stored root element."""
    fixed = dict(attributes)
    stored_root = _root_of(stored_html, block_name)
    value = stored_root.get(html_attribute) if stored_root is not None else None
    if value:
        fixed[key] = value
    else:
        fixed.pop(key, None)
    return fixed


def fix_anchor(
    definition: BlockTypeDefinition,
    attributes: Mapping[str, Any],
    stored_html: str,
) -> dict[str, Any]:
    """Take ``anchor`` from the stored root element's id."""
    if not definition.supports_anchor:
        return dict(attributes)
    return fix_root_attribute(attributes, stored_html, ANCHOR, "id", definition.name)


def fix_aria_label(
    definition: BlockTypeDefinition,
    attributes: Mapping[str, Any],
    stored_html: str,
) -> dict[str, Any]:
    if not definition.supports_aria_label:
        return dict(attributes)
    return fix_root_attribute(attributes, stored_html, ARIA_LABEL, "aria-label", definition.name)


def apply_builtin_fixes(
    definition: BlockTypeDefinition,
    attributes: Mapping[str, Any],
    stored_html: str,
    render: Renderer,
) -> dict[str, Any]:
    fixed = fix_custom_class_name(definition, attributes, stored_html, render)
    fixed = fix_aria_label(definition, fixed, stored_html)
    return fix_anchor(definition, fixed, stored_html)


__all__ = [
    "ANCHOR",
    "ARIA_LABEL",
    "CLASS_NAME",
    "apply_builtin_fixes",
    "effective_schemas",
    "fix_anchor",
    "fix_aria_label",
    "fix_custom_class_name",
    "fix_root_attribute",
    "render_save",
]
