import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from blockparse import __version__
from blockparse.cli import app

pytestmark = pytest.mark.usefixtures("isolate_logging")

VALID_DOC = (
    '<!-- wp:paragraph {"dropCap":true} -->\n<p class="has-drop-cap">Hi</p>\n<!-- /wp:paragraph -->\n'
    '<!-- wp:quote --><blockquote class="wp-block-quote">'
    "<!-- wp:paragraph --><p>q</p><!-- /wp:paragraph -->"
    "</blockquote><!-- /wp:quote -->"
)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "post.html"
    path.write_text(text, encoding="utf-8")
    return path


def test_cli_shows_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Parse, validate and re-serialize" in result.stdout


def test_cli_version_command_and_flag() -> None:
    runner = CliRunner()
    res1 = runner.invoke(app, ["version"])
    assert res1.exit_code == 0
    assert f"blockparse version {__version__}" in res1.stdout

    res2 = runner.invoke(app, ["--version"])
    assert res2.exit_code == 0
    assert __version__ in res2.stdout


class TestParseCommand:
    def test_table_output(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(app, ["parse", str(_write(tmp_path, VALID_DOC))])

        assert result.exit_code == 0
        assert "core/paragraph" in result.stdout
        assert "core/quote" in result.stdout
        assert "4 block(s), 0 invalid" in result.stdout

    def test_json_output(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(app, ["parse", str(_write(tmp_path, VALID_DOC)), "--json"])

        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert [(r["depth"], r["name"]) for r in records] == [
            (0, "core/paragraph"),
            (0, None),
            (0, "core/quote"),
            (1, "core/paragraph"),
        ]
        assert records[0]["attributes"] == {"content": "Hi", "dropCap": True}
        assert all(r["is_valid"] for r in records)

    def test_invalid_block_is_counted(self, tmp_path: Path) -> None:
        doc = "<!-- wp:paragraph --><div>x</div><!-- /wp:paragraph -->"
        runner = CliRunner()
        result = runner.invoke(app, ["parse", str(_write(tmp_path, doc)), "--workers", "2"])

        assert result.exit_code == 0
        assert "1 block(s), 1 invalid" in result.stdout

    def test_invalid_workers(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(app, ["parse", str(_write(tmp_path, "")), "--workers", "0"])

        assert result.exit_code == 1
        assert "Invalid workers '0'" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(app, ["parse", str(tmp_path / "missing.html")])
        assert result.exit_code != 0


class TestRoundtripCommand:
    def test_identical(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(app, ["roundtrip", str(_write(tmp_path, VALID_DOC))])

        assert result.exit_code == 0
        assert "Identical" in result.stdout

    def test_equivalent(self, tmp_path: Path) -> None:
        doc = "<!-- wp:core/paragraph --><p>x</p><!-- /wp:core/paragraph -->"
        runner = CliRunner()
        result = runner.invoke(app, ["roundtrip", str(_write(tmp_path, doc))])

        assert result.exit_code == 0
        assert "Equivalent after normalization" in result.stdout

    def test_empty_pair_written_void_is_equivalent(self, tmp_path: Path) -> None:
        doc = "<!-- wp:separator --><!-- /wp:separator -->"
        runner = CliRunner()
        result = runner.invoke(app, ["roundtrip", str(_write(tmp_path, doc))])

        assert result.exit_code == 0
        assert "Equivalent after normalization" in result.stdout

    def test_differs(self, tmp_path: Path) -> None:
        """Test a migrated block changes the document."""
        doc = '<!-- wp:separator --><hr class="wp-block-separator"/><!-- /wp:separator -->'
        runner = CliRunner()
        result = runner.invoke(app, ["roundtrip", str(_write(tmp_path, doc))])

        assert result.exit_code == 1
        assert "Round trip differs" in result.stdout


def test_tokens_command(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["tokens", str(_write(tmp_path, 'a<!-- wp:image {"id":1} /-->'))])

    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0].startswith("text")
    assert "block-self-closing" in lines[1]
    assert 'core/image {"id": 1}' in lines[1]
