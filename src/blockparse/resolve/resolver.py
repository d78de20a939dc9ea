"""Turn raw block nodes into resolved blocks.

Each tree is walked post-order on an explicit stack so children are resolved
before their parent, whatever the nesting depth. Independent top-level trees
may be resolved on a thread pool; results are always returned in source
order.
"""

from __future__ import annotations

import concurrent.futures
import logging
from collections.abc import Sequence

from blockparse.decision_logger import log_block_decision
from blockparse.errors import ErrorContext, ErrorManager, HtmlFragmentError
from blockparse.model.nodes import RawBlockNode, ResolvedBlock, ValidationIssue
from blockparse.model.options import ParserOptions
from blockparse.resolve.attributes import extract_attributes
from blockparse.resolve.fixes import effective_schemas
from blockparse.resolve.migration import resolve_migration
from blockparse.resolve.validation import validate_block
from blockparse.types import BlockTypeLookup

logger = logging.getLogger(__name__)


class BlockResolver:
    """Resolve attributes, validity and migrations for raw nodes."""

    def __init__(self, registry: BlockTypeLookup, options: ParserOptions | None = None) -> None:
        self.registry = registry
        self.options = options or ParserOptions()

    def resolve_node(
        self,
        node: RawBlockNode,
        inner_blocks: tuple[ResolvedBlock, ...] = (),
        index: int | None = None,
    ) -> ResolvedBlock:
        """Resolve one node whose children are already resolved."""
        name = node.name
        freeform = name is None
        if freeform:
            name = self.options.freeform_block_name
            if name is None:
                return ResolvedBlock(
                    name=None,
                    attributes={},
                    is_valid=True,
                    original_content=node.inner_html,
                    inner_content=node.inner_content,
                    freeform=True,
                )

        errors = ErrorManager(
            ErrorContext(
                block_name=name,
                block_index=index,
                source_module=__name__,
                flags=self.options.to_dict(),
            )
        )

        # Malformed JSON in the opener: attributes are absent, source is kept
        json_issues = (
            [ValidationIssue("malformed-attributes", node.json_error)] if node.json_error else []
        )

        definition = self.registry.lookup(name)
        if definition is None:
            errors.info("REG-001", f"Block type {name} is not registered")
            return ResolvedBlock(
                name=name,
                attributes={},
                inner_blocks=inner_blocks,
                is_valid=False,
                original_content=node.inner_html,
                inner_content=node.inner_content,
                raw_attributes=node.raw_attributes,
                implicitly_closed=node.implicitly_closed,
                freeform=freeform,
                opener_text=node.opener_text,
                issues=(ValidationIssue("unregistered", f"{name} is not registered"), *json_issues),
            )

        def invalid(attributes: dict, issues: list[ValidationIssue]) -> ResolvedBlock:
            return ResolvedBlock(
                name=name,
                attributes=attributes,
                inner_blocks=inner_blocks,
                is_valid=False,
                original_content=node.inner_html,
                inner_content=node.inner_content,
                raw_attributes=node.raw_attributes,
                is_registered=True,
                definition=definition,
                implicitly_closed=node.implicitly_closed,
                freeform=freeform,
                opener_text=node.opener_text,
                issues=tuple(issues + json_issues),
            )

        try:
            attributes = extract_attributes(
                effective_schemas(definition),
                node.inner_html,
                node.raw_attributes,
                block_name=name,
                errors=errors,
            )
            result = validate_block(
                definition,
                attributes,
                node.inner_html,
                apply_fixes=self.options.apply_builtin_fixes,
                errors=errors,
            )
        except HtmlFragmentError as exc:
            errors.error("HTML-001", str(exc), exception=exc)
            return invalid({}, [ValidationIssue("html-fragment", str(exc))])

        if result.is_valid:
            log_block_decision("validation", "valid", {"block": name, "fixed": result.fixed})
            return ResolvedBlock(
                name=name,
                attributes=result.attributes,
                inner_blocks=inner_blocks,
                is_valid=True,
                original_content=node.inner_html,
                inner_content=node.inner_content,
                raw_attributes=node.raw_attributes,
                is_registered=True,
                definition=definition,
                implicitly_closed=node.implicitly_closed,
                freeform=freeform,
                opener_text=node.opener_text,
                issues=tuple(json_issues),
            )

        errors.info(
            "VAL-001",
            f"Block {name} does not match its save() output",
            extra={"deprecated_versions": len(definition.deprecated)},
        )
        outcome = resolve_migration(
            definition,
            node,
            apply_fixes=self.options.apply_builtin_fixes,
            errors=errors,
        )
        issues = result.issues + outcome.issues
        if outcome.exhausted:
            log_block_decision("migration", "exhausted", {"block": name})
            return invalid(result.attributes, issues)

        log_block_decision(
            "migration", "migrated", {"block": name, "migrated_from": outcome.migrated_from}
        )
        inner_content = node.inner_content
        if outcome.is_valid and not inner_blocks and outcome.regenerated_html is not None:
            inner_content = (outcome.regenerated_html,) if outcome.regenerated_html else ()
        return ResolvedBlock(
            name=name,
            attributes=outcome.attributes,
            inner_blocks=inner_blocks,
            is_valid=outcome.is_valid,
            original_content=node.inner_html,
            migrated_from=outcome.migrated_from,
            inner_content=inner_content,
            raw_attributes=node.raw_attributes,
            is_registered=True,
            definition=definition,
            implicitly_closed=node.implicitly_closed,
            freeform=freeform,
            opener_text=node.opener_text,
            issues=tuple(issues + json_issues),
        )

    def resolve_tree(self, root: RawBlockNode, index: int | None = None) -> ResolvedBlock:
        """Resolve a whole tree, children first, without recursion."""
        result: list[ResolvedBlock] = []
        # (node, resolved children or None if not yet expanded, parent's output list)
        stack: list[tuple[RawBlockNode, list[ResolvedBlock] | None, list[ResolvedBlock]]] = [
            (root, None, result)
        ]
        while stack:
            node, children, out = stack.pop()
            if children is None:
                children = []
                stack.append((node, children, out))
                stack.extend((child, None, children) for child in reversed(node.inner_blocks))
            else:
                node_index = index if node is root else None
                out.append(self.resolve_node(node, tuple(children), node_index))
        return result[0]

    def resolve_all(self, nodes: Sequence[RawBlockNode]) -> list[ResolvedBlock]:
        """Resolve top-level nodes, in parallel when ``options.workers`` > 1."""
        workers = self.options.workers
        if workers <= 1 or len(nodes) < 2:
            return [self.resolve_tree(node, i) for i, node in enumerate(nodes)]

        logger.debug("Resolving %d top-level blocks on %d workers", len(nodes), workers)
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.resolve_tree, node, i) for i, node in enumerate(nodes)]
            # Ordered by index, not by completion
            return [future.result() for future in futures]


__all__ = [
    "BlockResolver",
]
