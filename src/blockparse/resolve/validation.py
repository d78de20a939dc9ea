"""Block validation.

A block is valid when its ``save`` output for the resolved attributes is
equivalent to the stored inner HTML under ``html.normalize``. When the plain
comparison fails the built-in fixes get one chance to reconcile the two.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from blockparse.errors import ErrorContext, ErrorManager, HtmlFragmentError
from blockparse.html.normalize import describe_difference, normalize_markup
from blockparse.model.nodes import ValidationIssue
from blockparse.model.schema import BlockTypeDefinition, SaveFunction
from blockparse.resolve.fixes import apply_builtin_fixes, render_save

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ValidationResult:
    is_valid: bool
    attributes: dict[str, Any]
    expected: str | None = None
    fixed: bool = False
    issues: list[ValidationIssue] = field(default_factory=list)


def validate_block(
    definition: BlockTypeDefinition,
    attributes: Mapping[str, Any],
    stored_html: str,
    *,
    save: SaveFunction | None = None,
    apply_fixes: bool = True,
    candidate: int | None = None,
    errors: ErrorManager | None = None,
) -> ValidationResult:
    """Compare ``save(attributes)`` against ``stored_html``.

    ``save`` defaults to the definition's current save; pass a deprecated
    version's save together with its ``candidate`` index to validate against
    that version. Exceptions raised by ``save`` make the block invalid.

    Raises:
        HtmlFragmentError: If the stored markup cannot be parsed
    """
    save = save or definition.save
    errors = errors or ErrorManager(
        ErrorContext(block_name=definition.name, source_module=__name__)
    )
    stored = normalize_markup(stored_html, definition.name)

    def render(attrs: Mapping[str, Any]) -> str:
        return render_save(definition, save, attrs)

    try:
        expected = render(attributes)
    except HtmlFragmentError:
        raise
    except Exception as exc:
        errors.warn(
            "VAL-001",
            f"save() raised for {definition.name}",
            extra={"candidate": candidate},
            exception=exc,
        )
        return ValidationResult(
            False,
            dict(attributes),
            issues=[ValidationIssue("save-error", f"{type(exc).__name__}: {exc}", candidate)],
        )

    if normalize_markup(expected, definition.name) == stored:
        return ValidationResult(True, dict(attributes), expected)

    issue = ValidationIssue(
        "mismatch", describe_difference(expected, stored_html) or "markup differs", candidate
    )

    if apply_fixes:
        try:
            fixed_attributes = apply_builtin_fixes(definition, attributes, stored_html, render)
            fixed_expected = render(fixed_attributes)
        except HtmlFragmentError:
            raise
        except Exception as exc:
            errors.warn(
                "VAL-001",
                f"save() raised while applying fixes for {definition.name}",
                extra={"candidate": candidate},
                exception=exc,
            )
        else:
            if fixed_attributes != dict(attributes) and (
                normalize_markup(fixed_expected, definition.name) == stored
            ):
                errors.info(
                    "VAL-002",
                    f"Built-in fixes reconciled {definition.name}",
                    extra={
                        "candidate": candidate,
                        "fixed_keys": sorted(
                            k
                            for k in set(fixed_attributes) | set(attributes)
                            if fixed_attributes.get(k) != attributes.get(k)
                        ),
                    },
                )
                return ValidationResult(True, fixed_attributes, fixed_expected, fixed=True)

    return ValidationResult(False, dict(attributes), expected, issues=[issue])


__all__ = [
    "ValidationResult",
    "validate_block",
]
