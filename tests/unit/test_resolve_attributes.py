"""Tests for attribute extraction."""

from __future__ import annotations

import logging

import pytest

from blockparse.errors import HtmlFragmentError
from blockparse.model.schema import AttributeSchema, AttributeSource, AttributeType
from blockparse.resolve.attributes import (
    comment_attributes,
    extract_attributes,
    is_valid_value,
)

S = AttributeSource
T = AttributeType


class TestCommentSource:
    """Attributes read from the delimiter JSON."""

    def test_reads_key(self) -> None:
        schemas = {"level": AttributeSchema(type=T.INTEGER, default=2)}
        assert extract_attributes(schemas, "", {"level": 3}) == {"level": 3}

    def test_missing_uses_default(self) -> None:
        schemas = {"level": AttributeSchema(type=T.INTEGER, default=2)}
        assert extract_attributes(schemas, "", None) == {"level": 2}

    def test_missing_without_default_is_omitted(self) -> None:
        schemas = {"id": AttributeSchema(type=T.INTEGER)}
        assert extract_attributes(schemas, "", {}) == {}

    def test_wrong_type_uses_default(self) -> None:
        schemas = {"dropCap": AttributeSchema(type=T.BOOLEAN, default=False)}
        assert extract_attributes(schemas, "", {"dropCap": "yes"}) == {"dropCap": False}

    def test_enum_rejects_unknown_value(self) -> None:
        schemas = {"tag": AttributeSchema(type=T.STRING, default="div", enum=("div", "main"))}
        assert extract_attributes(schemas, "", {"tag": "span"}) == {"tag": "div"}
        assert extract_attributes(schemas, "", {"tag": "main"}) == {"tag": "main"}

    def test_union_types(self) -> None:
        schemas = {"width": AttributeSchema(type=(T.INTEGER, T.STRING))}
        assert extract_attributes(schemas, "", {"width": 10}) == {"width": 10}
        assert extract_attributes(schemas, "", {"width": "10px"}) == {"width": "10px"}
        assert extract_attributes(schemas, "", {"width": [10]}) == {}

    def test_defaults_are_copied(self) -> None:
        """Test mutable defaults are not shared between blocks."""
        schemas = {"items": AttributeSchema(type=T.ARRAY, default=[])}
        first = extract_attributes(schemas, "", None)
        first["items"].append(1)
        assert extract_attributes(schemas, "", None) == {"items": []}

    def test_undeclared_keys_are_ignored(self) -> None:
        schemas = {"a": AttributeSchema(type=T.STRING)}
        assert extract_attributes(schemas, "", {"a": "x", "b": "y"}) == {"a": "x"}


class TestMarkupSources:
    """Attributes read from the block's inner HTML."""

    HTML = (
        '<figure class="wp-block-image"><img src="a.png" alt="A &amp; B" data-x/>'
        "<figcaption>Cap <em>tion</em></figcaption></figure>"
    )

    def test_attribute_source(self) -> None:
        schemas = {
            "url": AttributeSchema(type=T.STRING, source=S.ATTRIBUTE, selector="img", attribute="src"),
            "alt": AttributeSchema(type=T.STRING, source=S.ATTRIBUTE, selector="img", attribute="alt"),
        }
        assert extract_attributes(schemas, self.HTML, None) == {"url": "a.png", "alt": "A & B"}

    def test_attribute_missing_uses_default(self) -> None:
        schemas = {
            "title": AttributeSchema(
                type=T.STRING, source=S.ATTRIBUTE, selector="img", attribute="title", default="t"
            ),
            "link": AttributeSchema(type=T.STRING, source=S.ATTRIBUTE, selector="a", attribute="href"),
        }
        assert extract_attributes(schemas, self.HTML, None) == {"title": "t"}

    def test_boolean_attribute_is_presence(self) -> None:
        schemas = {
            "hasX": AttributeSchema(type=T.BOOLEAN, source=S.ATTRIBUTE, selector="img", attribute="data-x"),
            "hasY": AttributeSchema(type=T.BOOLEAN, source=S.ATTRIBUTE, selector="img", attribute="data-y"),
        }
        assert extract_attributes(schemas, self.HTML, None) == {"hasX": True, "hasY": False}

    def test_text_source(self) -> None:
        schemas = {"caption": AttributeSchema(type=T.STRING, source=S.TEXT, selector="figcaption")}
        assert extract_attributes(schemas, self.HTML, None) == {"caption": "Cap tion"}

    def test_html_source(self) -> None:
        schemas = {"caption": AttributeSchema(type=T.STRING, source=S.HTML, selector="figcaption")}
        assert extract_attributes(schemas, self.HTML, None) == {"caption": "Cap <em>tion</em>"}

    def test_html_source_without_selector_is_whole_fragment(self) -> None:
        schemas = {"content": AttributeSchema(type=T.STRING, source=S.HTML)}
        assert extract_attributes(schemas, "<b>x</b>y", None) == {"content": "<b>x</b>y"}

    def test_html_multiline(self) -> None:
        schemas = {
            "values": AttributeSchema(type=T.STRING, source=S.HTML, selector="ul", multiline="li")
        }
        html = "<ul>\n<li>one</li>\n<li>two <b>2</b></li>\n</ul>"
        assert extract_attributes(schemas, html, None) == {
            "values": "<li>one</li><li>two <b>2</b></li>"
        }

    def test_tag_source(self) -> None:
        schemas = {"level": AttributeSchema(type=T.STRING, source=S.TAG, selector="h1,h2,h3")}
        assert extract_attributes(schemas, "<h3>x</h3>", None) == {"level": "h3"}

    def test_raw_source(self) -> None:
        schemas = {"content": AttributeSchema(type=T.STRING, source=S.RAW)}
        html = "<p>not <b>parsed</b></p>\n"
        assert extract_attributes(schemas, html, None) == {"content": html}

    def test_query_source(self) -> None:
        """Test one entry per matched element, in document order."""
        schemas = {
            "images": AttributeSchema(
                type=T.ARRAY,
                source=S.QUERY,
                selector="img",
                query={
                    "url": AttributeSchema(type=T.STRING, source=S.ATTRIBUTE, attribute="src"),
                    "alt": AttributeSchema(
                        type=T.STRING, source=S.ATTRIBUTE, attribute="alt", default=""
                    ),
                },
            )
        }
        html = '<div><img src="1.png" alt="one"><img src="2.png"><p><img></p></div>'
        assert extract_attributes(schemas, html, None) == {
            "images": [
                {"url": "1.png", "alt": "one"},
                {"url": "2.png", "alt": ""},
                {"alt": ""},
            ]
        }

    def test_query_without_matches_is_empty(self) -> None:
        schemas = {
            "items": AttributeSchema(
                type=T.ARRAY,
                source=S.QUERY,
                selector="li",
                query={"text": AttributeSchema(type=T.STRING, source=S.TEXT)},
            )
        }
        assert extract_attributes(schemas, "<p>none</p>", None) == {"items": []}

    def test_invalid_selector_uses_default(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a broken selector is reported and falls back to the default."""
        caplog.set_level(logging.WARNING, logger="blockparse")
        schemas = {"x": AttributeSchema(type=T.STRING, source=S.TEXT, selector="p[", default="d")}

        assert extract_attributes(schemas, "<p>t</p>", None, block_name="acme/x") == {"x": "d"}
        records = [r for r in caplog.records if getattr(r, "event_code", None) == "ATTR-001"]
        assert records
        assert records[0].block_name == "acme/x"

    def test_markup_sources_never_read_comment(self) -> None:
        schemas = {"content": AttributeSchema(type=T.STRING, source=S.HTML, selector="p", default="")}
        assert extract_attributes(schemas, "", {"content": "from comment"}) == {"content": ""}


class TestFragmentFailure:
    def test_parser_failure_raises_fragment_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test fragment parser failures surface as HtmlFragmentError."""
        import blockparse.html.fragment as fragment

        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(fragment, "BeautifulSoup", explode)
        schemas = {"c": AttributeSchema(type=T.STRING, source=S.HTML, selector="p")}

        with pytest.raises(HtmlFragmentError) as excinfo:
            extract_attributes(schemas, "<p>x</p>", None, block_name="core/paragraph")
        assert excinfo.value.block_name == "core/paragraph"
        assert str(excinfo.value) == "Failed to parse HTML fragment for block core/paragraph: boom"

    def test_comment_only_schemas_do_not_parse(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test markup is not parsed when no schema needs it."""
        import blockparse.html.fragment as fragment

        def explode(*args, **kwargs):
            raise AssertionError("should not parse")

        monkeypatch.setattr(fragment, "BeautifulSoup", explode)
        schemas = {"a": AttributeSchema(type=T.INTEGER, default=1)}
        assert extract_attributes(schemas, "<p>x</p>", None) == {"a": 1}


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "attribute_type", "expected"),
        [
            (1, T.INTEGER, True),
            (1.0, T.INTEGER, True),
            (1.5, T.INTEGER, False),
            (True, T.INTEGER, False),
            (True, T.NUMBER, False),
            (2.5, T.NUMBER, True),
            ({}, T.OBJECT, True),
            ([], T.OBJECT, False),
            ("anything", T.NULL, True),
        ],
    )
    def test_is_valid_value(self, value, attribute_type, expected) -> None:
        assert is_valid_value(value, AttributeSchema(type=attribute_type)) is expected

    def test_comment_attributes_skip_defaults_and_markup(self) -> None:
        schemas = {
            "content": AttributeSchema(type=T.STRING, source=S.HTML, selector="p"),
            "dropCap": AttributeSchema(type=T.BOOLEAN, default=False),
            "level": AttributeSchema(type=T.INTEGER, default=2),
        }
        attributes = {"content": "x", "dropCap": True, "level": 2}
        assert comment_attributes(schemas, attributes) == {"dropCap": True}
