"""Migration of invalid blocks through their deprecated versions.

Candidates are tried strictly in order, newest first. For candidate ``i``:

1. extract attributes with the candidate's schemas
2. skip the candidate if ``is_eligible`` rejects them
3. validate the stored markup against the candidate's ``save``
4. apply ``migrate`` to get attributes under the current schema
5. re-validate with the current ``save``

The first candidate that gets through step 4 wins (``Migrated(i)``); the
outcome of step 5 only decides ``is_valid``. A candidate whose callbacks raise
counts as failed. When no candidate is left the block is ``Exhausted``.

Step 5 validates the markup the current ``save`` regenerates: the migrated
attributes must survive a serialize and re-parse under the current schema.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from blockparse.errors import ErrorContext, ErrorManager
from blockparse.html.normalize import normalize_markup
from blockparse.model.nodes import RawBlockNode, ValidationIssue
from blockparse.model.schema import BlockTypeDefinition, DeprecatedVersion
from blockparse.resolve.attributes import comment_attributes, extract_attributes
from blockparse.resolve.fixes import effective_schemas, render_save
from blockparse.resolve.validation import validate_block

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MigrationOutcome:
    """Terminal state of the migration chain.

    ``migrated_from`` is None when the chain was exhausted. ``attempted``
    lists every candidate index tried, in order.
    """

    migrated_from: int | None
    attributes: dict[str, Any] = field(default_factory=dict)
    is_valid: bool = False
    regenerated_html: str | None = None
    attempted: list[int] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return self.migrated_from is None


class _CandidateFailed(Exception):
    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)


class MigrationResolver:
    """Walk a definition's deprecated versions for one block."""

    def __init__(
        self,
        definition: BlockTypeDefinition,
        *,
        apply_fixes: bool = True,
        errors: ErrorManager | None = None,
    ) -> None:
        self.definition = definition
        self.apply_fixes = apply_fixes
        self.errors = errors or ErrorManager(
            ErrorContext(block_name=definition.name, source_module=__name__)
        )

    def _try_candidate(
        self, index: int, version: DeprecatedVersion, node: RawBlockNode
    ) -> dict[str, Any]:
        schemas = effective_schemas(self.definition, version.attributes)
        old_attributes = extract_attributes(
            schemas,
            node.inner_html,
            node.raw_attributes,
            block_name=self.definition.name,
            errors=self.errors,
        )
        if version.is_eligible is not None and not version.is_eligible(old_attributes):
            raise _CandidateFailed("ineligible", "is_eligible() returned False")

        result = validate_block(
            self.definition,
            old_attributes,
            node.inner_html,
            save=version.save,
            apply_fixes=self.apply_fixes,
            candidate=index,
            errors=self.errors,
        )
        if not result.is_valid:
            issue = result.issues[0] if result.issues else None
            raise _CandidateFailed(
                issue.code if issue else "mismatch",
                issue.message if issue else "markup differs",
            )

        if version.migrate is None:
            return result.attributes
        migrated = version.migrate(dict(result.attributes))
        if not isinstance(migrated, dict):
            raise _CandidateFailed(
                "migrate-error", f"migrate() returned {type(migrated).__name__}, expected dict"
            )
        return migrated

    def _revalidate(self, attributes: dict[str, Any]) -> tuple[bool, str | None]:
        """Validate the markup the current save produces for ``attributes``."""
        definition = self.definition
        schemas = effective_schemas(definition)
        try:
            regenerated = render_save(definition, definition.save, attributes)
            reparsed = extract_attributes(
                schemas,
                regenerated,
                comment_attributes(schemas, attributes),
                block_name=definition.name,
                errors=self.errors,
            )
            again = render_save(definition, definition.save, reparsed)
        except Exception as exc:
            self.errors.warn(
                "MIG-001",
                f"Current save() failed on migrated attributes of {definition.name}",
                exception=exc,
            )
            return False, None
        valid = normalize_markup(again, definition.name) == normalize_markup(
            regenerated, definition.name
        )
        return valid, regenerated

    def resolve(self, node: RawBlockNode) -> MigrationOutcome:
        outcome = MigrationOutcome(migrated_from=None)
        for index, version in enumerate(self.definition.deprecated):
            outcome.attempted.append(index)
            try:
                attributes = self._try_candidate(index, version, node)
            except _CandidateFailed as exc:
                outcome.issues.append(ValidationIssue(exc.code, str(exc), index))
                self.errors.info(
                    "MIG-001",
                    f"Deprecated version {index} of {self.definition.name} failed: {exc.code}",
                    extra={"candidate": index},
                )
                continue
            except Exception as exc:
                outcome.issues.append(
                    ValidationIssue("callback-error", f"{type(exc).__name__}: {exc}", index)
                )
                self.errors.info(
                    "MIG-001",
                    f"Deprecated version {index} of {self.definition.name} raised",
                    extra={
                        "candidate": index,
                        "exception_class": type(exc).__name__,
                        "exception_message": str(exc),
                    },
                )
                self.errors.error_policy(
                    "migration", "callback_failed", "skip_candidate", details=type(exc).__name__
                )
                continue

            is_valid, regenerated = self._revalidate(attributes)
            if not is_valid:
                outcome.issues.append(
                    ValidationIssue(
                        "revalidation-failed",
                        "migrated attributes do not validate against the current save()",
                        index,
                    )
                )
            outcome.migrated_from = index
            outcome.attributes = attributes
            outcome.is_valid = is_valid
            outcome.regenerated_html = regenerated
            self.errors.decision(
                "MIG-002",
                "migrated_from",
                index,
                extra={"is_valid": is_valid},
            )
            return outcome

        if not self.definition.deprecated:
            self.errors.debug(
                "MIG-003",
                f"{self.definition.name} has no deprecated versions, keeping original content",
            )
            return outcome
        self.errors.warn(
            "MIG-003",
            f"No deprecated version of {self.definition.name} matched "
            f"({len(outcome.attempted)} tried), keeping original content",
            extra={"attempted": list(outcome.attempted)},
        )
        return outcome


def resolve_migration(
    definition: BlockTypeDefinition,
    node: RawBlockNode,
    *,
    apply_fixes: bool = True,
    errors: ErrorManager | None = None,
) -> MigrationOutcome:
    return MigrationResolver(definition, apply_fixes=apply_fixes, errors=errors).resolve(node)


__all__ = [
    "MigrationOutcome",
    "MigrationResolver",
    "resolve_migration",
]
