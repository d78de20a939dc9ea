"""Tests for the in-memory block type registry."""

from __future__ import annotations

import pytest

from blockparse.builder.registry import BlockTypeRegistry, qualify
from blockparse.errors import RegistryError
from blockparse.library.core_blocks import CORE_BLOCKS, PARAGRAPH, SEPARATOR
from blockparse.model.schema import BlockTypeDefinition


def _definition(name: str) -> BlockTypeDefinition:
    return BlockTypeDefinition(name=name, attributes={}, save=lambda attributes: "")


class TestRegistry:
    def test_register_and_lookup(self) -> None:
        registry = BlockTypeRegistry()
        registry.register(PARAGRAPH)

        assert registry.lookup("core/paragraph") is PARAGRAPH
        assert registry.lookup("paragraph") is PARAGRAPH
        assert registry.lookup("core/heading") is None
        assert "paragraph" in registry
        assert 42 not in registry
        assert len(registry) == 1

    def test_constructor_registers_definitions(self) -> None:
        registry = BlockTypeRegistry(CORE_BLOCKS)

        assert len(registry) == len(CORE_BLOCKS)
        assert list(registry) == list(CORE_BLOCKS)
        assert registry.names() == sorted(d.name for d in CORE_BLOCKS)

    def test_duplicate_is_rejected(self) -> None:
        registry = BlockTypeRegistry([SEPARATOR])

        with pytest.raises(RegistryError, match="already registered"):
            registry.register(SEPARATOR)

    @pytest.mark.parametrize("name", ["paragraph", "Core/paragraph", "core/", "1core/x", "a/b/c"])
    def test_malformed_name_is_rejected(self, name: str) -> None:
        """Test names must be lower-case namespace/name."""
        with pytest.raises(RegistryError) as excinfo:
            BlockTypeRegistry().register(_definition(name))
        assert excinfo.value.name == name
        assert str(excinfo.value).startswith(f"Cannot register block type '{name}'")

    def test_unregister(self) -> None:
        registry = BlockTypeRegistry([_definition("acme/box")])

        assert registry.unregister("acme/box").name == "acme/box"
        assert registry.unregister("acme/box") is None
        assert registry.lookup("acme/box") is None


def test_qualify() -> None:
    assert qualify("paragraph") == "core/paragraph"
    assert qualify("acme/box") == "acme/box"
