"""In-memory block type registry.

The pipeline only ever calls ``lookup``; registration happens before a parse
starts. Names are fully qualified (``namespace/name``); a bare name is looked
up in the ``core`` namespace.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator

from blockparse.errors import RegistryError
from blockparse.model.schema import BlockTypeDefinition
from blockparse.parser.tokenizer import DEFAULT_NAMESPACE

logger = logging.getLogger(__name__)

BLOCK_NAME_RE = re.compile(r"^[a-z][a-z0-9_-]*/[a-z][a-z0-9_-]*$")


def qualify(name: str) -> str:
    return name if "/" in name else f"{DEFAULT_NAMESPACE}/{name}"


class BlockTypeRegistry:
    """Mapping of block names to definitions."""

    def __init__(self, definitions: Iterable[BlockTypeDefinition] = ()) -> None:
        self._definitions: dict[str, BlockTypeDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: BlockTypeDefinition) -> BlockTypeDefinition:
        """Add a definition.

        Raises:
            RegistryError: If the name is malformed or already registered
        """
        name = definition.name
        if not BLOCK_NAME_RE.match(name):
            raise RegistryError(
                name, "block names must look like 'namespace/name' in lower case"
            )
        if name in self._definitions:
            raise RegistryError(name, "already registered")
        self._definitions[name] = definition
        logger.debug("Registered block type %s", name)
        return definition

    def unregister(self, name: str) -> BlockTypeDefinition | None:
        return self._definitions.pop(qualify(name), None)

    def lookup(self, name: str) -> BlockTypeDefinition | None:
        return self._definitions.get(qualify(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and qualify(name) in self._definitions

    def __iter__(self) -> Iterator[BlockTypeDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def names(self) -> list[str]:
        return sorted(self._definitions)


__all__ = [
    "BLOCK_NAME_RE",
    "BlockTypeRegistry",
    "qualify",
]
