"""Parser options for blockparse.

Defaults give the behaviour of a plain ``parse(source, registry)`` call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from blockparse.errors import InvalidOptionError

DEFAULT_MAX_DEPTH = 100_000


@dataclass
class ParserOptions:
    """Configuration options for a parse run."""

    # Openers nested deeper than this stay literal text
    max_depth: int = DEFAULT_MAX_DEPTH

    # Move stray classes / ids into className / anchor before declaring a block invalid
    apply_builtin_fixes: bool = True

    # Registered block type that root-level freeform text resolves as (None keeps it freeform)
    freeform_block_name: str | None = None

    # Threads used for independent top-level blocks (1 = sequential)
    workers: int = 1

    @classmethod
    def from_cli(
        cls,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        fixes: str = "on",
        freeform_block_name: str | None = None,
        workers: int = 1,
    ) -> ParserOptions:
        """Build ParserOptions from CLI argument values.

        Args:
            max_depth: Nesting bound, must be at least 1
            fixes: Built-in validation fixes ("on", "off")
            freeform_block_name: Block type for root-level freeform text
            workers: Worker threads, must be at least 1

        Returns:
            ParserOptions instance

        Raises:
            InvalidOptionError: If any argument has an invalid value
        """
        if max_depth < 1:
            raise InvalidOptionError(f"Invalid max_depth '{max_depth}'. Must be >= 1")

        if fixes == "on":
            fixes_bool = True
        elif fixes == "off":
            fixes_bool = False
        else:
            raise InvalidOptionError(f"Invalid fixes '{fixes}'. Valid values: ['on', 'off']")

        if workers < 1:
            raise InvalidOptionError(f"Invalid workers '{workers}'. Must be >= 1")

        if freeform_block_name is not None and "/" not in freeform_block_name:
            freeform_block_name = f"core/{freeform_block_name}"

        return cls(
            max_depth=max_depth,
            apply_builtin_fixes=fixes_bool,
            freeform_block_name=freeform_block_name,
            workers=workers,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return {
            "max_depth": self.max_depth,
            "apply_builtin_fixes": self.apply_builtin_fixes,
            "freeform_block_name": self.freeform_block_name,
            "workers": self.workers,
        }

    def __repr__(self) -> str:
        """String representation for debugging/logging."""
        return (
            f"ParserOptions("
            f"max_depth={self.max_depth}, "
            f"apply_builtin_fixes={self.apply_builtin_fixes}, "
            f"freeform_block_name={self.freeform_block_name!r}, "
            f"workers={self.workers}"
            f")"
        )


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "ParserOptions",
]
