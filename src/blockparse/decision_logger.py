"""Centralized decision logging for the block parsing pipeline.

This module logs parser configuration, per-block resolution decisions and
error policies. It is meant for debugging and troubleshooting; callers that
need structured records use ``ErrorManager`` which routes through here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from blockparse.model.options import ParserOptions

logger = logging.getLogger(__name__)


def log_parser_configuration(options: ParserOptions) -> None:
    """Log the parser configuration decisions for debugging.

    Args:
        options: Parser options to log
    """
    logger.info("Parser configuration:")
    logger.info("  Max depth: %d", options.max_depth)
    logger.info("  Built-in fixes: %s", "enabled" if options.apply_builtin_fixes else "disabled")
    if options.freeform_block_name:
        logger.info("  Freeform block: %s", options.freeform_block_name)
    logger.info("  Workers: %d", options.workers)


def log_block_decision(
    decision_key: str, decision: str, context: dict[str, Any] | None = None
) -> None:
    """Log a block resolution decision.

    Args:
        decision_key: What was decided (e.g. "validation", "migration")
        decision: The outcome (e.g. "valid", "migrated", "exhausted")
        context: Optional context information
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        logger.debug("%s: %s (%s)", decision_key, decision, context_str)
    else:
        logger.debug("%s: %s", decision_key, decision)


def log_error_policy(
    feature: str, error_type: str, action: str, details: str | None = None
) -> None:
    """Log error handling policy decisions.

    Args:
        feature: Pipeline stage encountering the error (e.g. "tree", "migration")
        error_type: Type of error (e.g. "orphan_closer", "callback_failed")
        action: Action taken (e.g. "keep_as_text", "skip_candidate")
        details: Optional additional details
    """
    if details:
        logger.debug("%s error policy: %s -> %s (%s)", feature, error_type, action, details)
    else:
        logger.debug("%s error policy: %s -> %s", feature, error_type, action)


__all__ = [
    "log_parser_configuration",
    "log_block_decision",
    "log_error_policy",
]
