from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from blockparse.model.schema import BlockTypeDefinition


class BlockTypeLookup(Protocol):
    """The read-only registry interface the pipeline consumes."""

    def lookup(self, name: str) -> BlockTypeDefinition | None:  # pragma: no cover - typing
        ...


class PreCallback(Protocol):
    def __call__(self, block: Any, parent: Any, previous: Any) -> str | None:  # pragma: no cover
        ...


class PostCallback(Protocol):
    def __call__(self, block: Any, parent: Any, following: Any) -> str | None:  # pragma: no cover
        ...
