"""Tests for block validation and the built-in fixes."""

from __future__ import annotations

import logging

import pytest

from blockparse.errors import HtmlFragmentError
from blockparse.library.core_blocks import PARAGRAPH, SEPARATOR
from blockparse.model.schema import AttributeSchema, AttributeType, BlockTypeDefinition
from blockparse.resolve.fixes import (
    ANCHOR,
    ARIA_LABEL,
    CLASS_NAME,
    apply_builtin_fixes,
    effective_schemas,
    render_save,
)
from blockparse.resolve.validation import validate_block


def _box_save(attributes) -> str:
    return f'<div class="box">{attributes.get("text", "")}</div>'


BOX = BlockTypeDefinition(
    name="acme/box",
    attributes={"text": AttributeSchema(type=AttributeType.STRING, default="")},
    save=_box_save,
    supports_anchor=True,
)


LABELLED = BlockTypeDefinition(
    name="acme/region",
    attributes={},
    save=lambda attributes: '<nav class="region"></nav>',
    supports_aria_label=True,
)


class TestValidateBlock:
    def test_matching_markup_is_valid(self) -> None:
        result = validate_block(PARAGRAPH, {"content": "Hi", "dropCap": False}, "\n<p>Hi</p>\n")

        assert result.is_valid
        assert not result.fixed
        assert result.issues == []
        assert result.expected == "<p>Hi</p>"

    def test_mismatch_is_invalid_with_issue(self) -> None:
        result = validate_block(PARAGRAPH, {"content": "Hi", "dropCap": False}, "<p>Bye</p>")

        assert not result.is_valid
        assert result.issues[0].code == "mismatch"
        assert "Bye" in result.issues[0].message

    def test_save_exception_makes_block_invalid(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="blockparse")

        def broken(attributes) -> str:
            raise KeyError("content")

        definition = BlockTypeDefinition(name="acme/broken", attributes={}, save=broken)
        result = validate_block(definition, {}, "<p>x</p>")

        assert not result.is_valid
        assert result.issues[0].code == "save-error"
        assert "KeyError" in result.issues[0].message
        assert any(r.exception_class == "KeyError" for r in caplog.records if hasattr(r, "exception_class"))

    def test_alternative_save_and_candidate(self) -> None:
        """Test validation against a deprecated save records the candidate index."""
        result = validate_block(
            PARAGRAPH,
            {"content": "Hi", "dropCap": True},
            '<p class="has-drop-cap">Hi</p>',
            save=PARAGRAPH.deprecated[0].save,
            candidate=0,
        )
        assert not result.is_valid
        assert result.issues[0].candidate == 0

    def test_comment_only_block(self) -> None:
        assert validate_block(SEPARATOR, {}, "").is_valid
        assert not validate_block(SEPARATOR, {}, "<hr/>").is_valid

    def test_unparseable_markup_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import blockparse.html.fragment as fragment

        def explode(*args, **kwargs):
            raise ValueError("rejected")

        monkeypatch.setattr(fragment, "BeautifulSoup", explode)
        with pytest.raises(HtmlFragmentError):
            validate_block(PARAGRAPH, {"content": "Hi"}, "<p>Hi</p>")


class TestBuiltinFixes:
    def test_custom_class_moved_to_class_name(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="blockparse")
        result = validate_block(BOX, {"text": "t"}, '<div class="box fancy big">t</div>')

        assert result.is_valid
        assert result.fixed
        assert result.attributes[CLASS_NAME] == "fancy big"
        assert any(getattr(r, "event_code", None) == "VAL-002" for r in caplog.records)

    def test_anchor_taken_from_id(self) -> None:
        result = validate_block(BOX, {"text": "t"}, '<div class="box" id="intro">t</div>')

        assert result.is_valid
        assert result.attributes[ANCHOR] == "intro"

    def test_aria_label_taken_from_root(self) -> None:
        result = validate_block(LABELLED, {}, '<nav class="region" aria-label="Main menu"></nav>')

        assert result.is_valid
        assert result.fixed
        assert result.attributes == {ARIA_LABEL: "Main menu"}

    def test_aria_label_unsupported(self) -> None:
        result = validate_block(BOX, {"text": "t"}, '<div class="box" aria-label="x">t</div>')
        assert not result.is_valid

    def test_fixes_disabled(self) -> None:
        result = validate_block(
            BOX, {"text": "t"}, '<div class="box fancy">t</div>', apply_fixes=False
        )
        assert not result.is_valid

    def test_fix_does_not_hide_real_mismatch(self) -> None:
        result = validate_block(BOX, {"text": "t"}, '<div class="box fancy">other</div>')
        assert not result.is_valid

    def test_class_name_unsupported(self) -> None:
        result = validate_block(SEPARATOR, {}, '<hr class="custom"/>')
        assert not result.is_valid

    def test_apply_builtin_fixes_removes_stale_class_name(self) -> None:
        def render(attributes) -> str:
            return render_save(BOX, BOX.save, attributes)

        fixed = apply_builtin_fixes(
            BOX, {"text": "t", CLASS_NAME: "gone", ANCHOR: "a"}, '<div class="box">t</div>', render
        )
        assert fixed == {"text": "t"}


class TestImplicitAttributes:
    def test_effective_schemas_add_supported(self) -> None:
        schemas = effective_schemas(BOX)
        assert list(schemas) == ["text", CLASS_NAME, ANCHOR]

    def test_effective_schemas_respect_supports(self) -> None:
        assert list(effective_schemas(SEPARATOR)) == []

    def test_render_save_applies_root_attributes(self) -> None:
        html = render_save(BOX, BOX.save, {"text": "t", CLASS_NAME: "x", ANCHOR: "top"})
        assert html == '<div class="box x" id="top">t</div>'

    def test_render_save_applies_aria_label(self) -> None:
        html = render_save(LABELLED, LABELLED.save, {ARIA_LABEL: "Main menu"})
        assert html == '<nav class="region" aria-label="Main menu"></nav>'

    def test_effective_schemas_order(self) -> None:
        assert list(effective_schemas(LABELLED)) == [CLASS_NAME, ARIA_LABEL]
