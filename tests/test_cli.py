"""Tests for the command-line interface."""

import json

import pytest

from vaultclip import cli
from vaultclip.exceptions import FetchError
from vaultclip.http import FetchedPage
from vaultclip.models import Template
from vaultclip.storage import JsonTemplateRepository

PAGE = """<html><head><title>Parsing 101</title></head>
<body><article><p>Tokens become <b>trees</b>.</p></article></body></html>"""

TEMPLATE = {
    "id": "article",
    "name": "Article",
    "behavior": "create",
    "noteNameFormat": "{{title|kebab}}",
    "path": "Clippings",
    "noteContentFormat": "# {{title}}\n\n{{content}}",
    "properties": [{"name": "source", "value": "{{url}}", "type": "text"}],
}


@pytest.fixture
def html_file(tmp_path):
    path = tmp_path / "page.html"
    path.write_text(PAGE, encoding="utf-8")
    return path


@pytest.fixture
def template_file(tmp_path):
    path = tmp_path / "template.json"
    path.write_text(json.dumps(TEMPLATE), encoding="utf-8")
    return path


class TestClipCommand:
    """Tests for clipping from the command line."""

    def test_html_file_without_template(self, html_file, capsys):
        """Test the default note layout."""
        exit_code = cli.main(["--html-file", str(html_file), "--url", "https://e.com/p"])

        out = capsys.readouterr().out
        assert exit_code == cli.EXIT_OK
        assert out.startswith("# Parsing 101\n\nTokens become **trees**.")
        assert "Source: https://e.com/p" in out

    def test_template_file(self, html_file, template_file, capsys):
        """Test rendering with a template file."""
        exit_code = cli.main(
            ["--html-file", str(html_file), "--url", "https://e.com/p", "--template", str(template_file)]
        )

        out = capsys.readouterr().out
        assert exit_code == cli.EXIT_OK
        assert out.startswith('---\nsource: "https://e.com/p"\n---\n\n# Parsing 101')

    def test_json_output(self, html_file, template_file, capsys):
        """Test printing the vault request."""
        exit_code = cli.main(
            [
                "--html-file",
                str(html_file),
                "--url",
                "https://e.com/p",
                "--template",
                str(template_file),
                "--vault",
                "Work",
                "--json",
            ]
        )

        request = json.loads(capsys.readouterr().out)
        assert exit_code == cli.EXIT_OK
        assert request["noteName"] == "parsing-101"
        assert request["path"] == "Clippings"
        assert request["vault"] == "Work"
        assert request["behavior"] == "create"
        assert request["properties"] == {"source": "https://e.com/p"}

    def test_template_fallback_exit_code(self, html_file, tmp_path, capsys):
        """Test that a broken template still prints a note."""
        broken = tmp_path / "broken.json"
        broken.write_text(json.dumps({**TEMPLATE, "noteContentFormat": "{% if title %}"}), encoding="utf-8")

        exit_code = cli.main(["--html-file", str(html_file), "--template", str(broken)])

        captured = capsys.readouterr()
        assert exit_code == cli.EXIT_FALLBACK
        assert captured.out.startswith("# Parsing 101\n\nTokens become **trees**.")
        assert "Template failed" in captured.err

    def test_template_store(self, html_file, tmp_path, capsys):
        """Test picking a template from a store by id."""
        store = tmp_path / "templates.json"
        repo = JsonTemplateRepository(store)
        repo.save(Template(name="First", note_content_format="first"))
        repo.save(Template(id="second", name="Second", note_content_format="second: {{title}}"))

        exit_code = cli.main(["--html-file", str(html_file), "--templates", str(store), "--template-id", "second"])

        assert exit_code == cli.EXIT_OK
        assert capsys.readouterr().out == "second: Parsing 101\n"

    def test_empty_template_store(self, html_file, tmp_path, capsys):
        """Test that an empty store is an error."""
        exit_code = cli.main(["--html-file", str(html_file), "--templates", str(tmp_path / "none.json")])

        assert exit_code == cli.EXIT_ERROR
        assert "No templates stored" in capsys.readouterr().err

    def test_fetches_url(self, monkeypatch, capsys):
        """Test that a URL argument is fetched and the final URL used."""
        fetched = []

        class FakeFetcher:
            def __init__(self, config):
                self.config = config

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return None

            def fetch(self, url):
                fetched.append(url)
                return FetchedPage(html=PAGE, url="https://e.com/final")

        monkeypatch.setattr(cli, "RequestsPageFetcher", FakeFetcher)

        exit_code = cli.main(["https://e.com/start"])

        assert exit_code == cli.EXIT_OK
        assert fetched == ["https://e.com/start"]
        assert "Source: https://e.com/final" in capsys.readouterr().out

    def test_fetch_error(self, monkeypatch, capsys):
        """Test that fetch failures exit with an error."""

        class FailingFetcher:
            def __init__(self, config):
                pass

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return None

            def fetch(self, url):
                raise FetchError("HTTP 503 for " + url, 503)

        monkeypatch.setattr(cli, "RequestsPageFetcher", FailingFetcher)

        assert cli.main(["https://e.com/down"]) == cli.EXIT_ERROR
        assert "HTTP 503" in capsys.readouterr().err


class TestErrors:
    """Tests for error exits."""

    def test_no_input(self, capsys):
        """Test that a URL or file is required."""
        assert cli.main([]) == cli.EXIT_ERROR
        assert "provide a URL" in capsys.readouterr().err

    def test_missing_html_file(self, tmp_path):
        """Test an unreadable input file."""
        assert cli.main(["--html-file", str(tmp_path / "missing.html")]) == cli.EXIT_ERROR

    def test_extraction_error(self, tmp_path):
        """Test a page with nothing to extract."""
        path = tmp_path / "empty.html"
        path.write_text("<html><body></body></html>", encoding="utf-8")

        assert cli.main(["--html-file", str(path)]) == cli.EXIT_ERROR

    def test_invalid_template(self, html_file, tmp_path, capsys):
        """Test a template that fails validation."""
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({**TEMPLATE, "behavior": "merge"}), encoding="utf-8")

        assert cli.main(["--html-file", str(html_file), "--template", str(bad)]) == cli.EXIT_ERROR
        assert "Template error" in capsys.readouterr().err

    def test_invalid_config(self, html_file, tmp_path, capsys):
        """Test a settings file that fails validation."""
        config = tmp_path / "settings.yaml"
        config.write_text("nonsense_key: 1\n", encoding="utf-8")

        assert cli.main(["--html-file", str(html_file), "--config", str(config)]) == cli.EXIT_ERROR
        assert "Configuration error" in capsys.readouterr().err

    def test_version(self, capsys):
        """Test --version."""
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])

        assert exc_info.value.code == 0
        assert "vaultclip" in capsys.readouterr().out


class TestImportCommand:
    """Tests for --import."""

    def test_import_into_store(self, tmp_path, capsys):
        """Test importing templates into a store."""
        source = tmp_path / "export.json"
        source.write_text(json.dumps([TEMPLATE, {"name": "No id"}]), encoding="utf-8")
        store = tmp_path / "store" / "templates.json"

        exit_code = cli.main(["--import", str(source), "--templates", str(store)])

        assert exit_code == cli.EXIT_OK
        assert [t.name for t in JsonTemplateRepository(store).load()] == ["Article", "No id"]
        assert "Imported:" in capsys.readouterr().err

    def test_import_with_failures(self, tmp_path, capsys):
        """Test that failed templates are reported and set the exit code."""
        source = tmp_path / "export.json"
        source.write_text(json.dumps([TEMPLATE, {"name": "Bad", "behavior": "merge"}]), encoding="utf-8")

        exit_code = cli.main(["--import", str(source)])

        err = capsys.readouterr().err
        assert exit_code == cli.EXIT_ERROR
        assert "Imported:" in err
        assert "Failed:" in err

    def test_import_invalid_json(self, tmp_path, capsys):
        """Test a file that is not JSON at all."""
        source = tmp_path / "export.json"
        source.write_text("not json", encoding="utf-8")

        assert cli.main(["--import", str(source)]) == cli.EXIT_ERROR
        assert "Template error" in capsys.readouterr().err
