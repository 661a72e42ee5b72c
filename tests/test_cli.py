"""Tests for the md2confluence CLI."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from md2confluence.cli import app
from md2confluence.confluence import (
    ConfluenceClient,
    ConfluenceError,
    CurrentUser,
    PageInfo,
    PageSearchHit,
    SpaceInfo,
)
from md2confluence.converter import DiagramExtractor, MarkdownConverter, artifact_filename

runner = CliRunner()


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run in an empty directory with no user-global config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def stub_converter(kroki):
    converter = MarkdownConverter(DiagramExtractor(kroki.renderer()))
    with patch("md2confluence.cli._build_converter", return_value=converter):
        yield converter


@pytest.fixture
def mock_client():
    client = MagicMock(spec=ConfluenceClient)
    client.create_page = AsyncMock(
        return_value=PageInfo(
            id="321", title="Doc", version=1,
            url="https://acme.atlassian.net/wiki/spaces/ENG/pages/321",
        )
    )
    client.get_page = AsyncMock(return_value=PageInfo(id="321", title="Doc", version=2))
    client.update_page = AsyncMock(return_value=PageInfo(id="321", title="Doc", version=3))
    client.list_attachments = AsyncMock(return_value=[])
    client.upload_attachment = AsyncMock(return_value=None)
    with patch("md2confluence.cli.create_client", return_value=client):
        yield client


class TestConvert:
    def test_prints_markup(self, isolated, stub_converter):
        (isolated / "doc.md").write_text("---\ntitle: x\n---\n# Hello\n")
        result = runner.invoke(app, ["convert", "doc.md"])
        assert result.exit_code == 0
        assert "<h1>Hello</h1>" in result.output
        assert "title: x" not in result.output

    def test_writes_output_and_assets(self, isolated, stub_converter, mermaid_doc, png_bytes):
        (isolated / "doc.md").write_text(mermaid_doc)
        result = runner.invoke(
            app, ["convert", "doc.md", "-o", "out.xml", "--assets", "assets"]
        )
        assert result.exit_code == 0

        name = artifact_filename("flowchart LR\nA-->B")
        assert f'ri:filename="{name}"' in (isolated / "out.xml").read_text()
        assert (isolated / "assets" / name).read_bytes() == png_bytes

    def test_missing_file(self, isolated):
        result = runner.invoke(app, ["convert", "nope.md"])
        assert result.exit_code == 1
        assert "Could not read" in result.output


class TestUpload:
    def test_creates_page(self, isolated, stub_converter, mock_client, mermaid_doc):
        (isolated / "doc.md").write_text(mermaid_doc)
        result = runner.invoke(app, ["upload", "doc.md", "--space", "ENG", "-p", "7"])

        assert result.exit_code == 0, result.output
        space, title, _body, parent = mock_client.create_page.call_args.args
        assert (space, title, parent) == ("ENG", "Architecture", "7")
        mock_client.upload_attachment.assert_awaited_once()
        assert "Page created" in result.output
        assert "321" in result.output

    def test_requires_space(self, isolated):
        (isolated / "doc.md").write_text("# x\n")
        result = runner.invoke(app, ["upload", "doc.md"])
        assert result.exit_code != 0

    def test_missing_credentials(self, isolated, stub_converter, monkeypatch):
        for name in ("CONFLUENCE_URL", "CONFLUENCE_EMAIL", "CONFLUENCE_TOKEN"):
            monkeypatch.delenv(name, raising=False)
        (isolated / "doc.md").write_text("# x\n")

        result = runner.invoke(app, ["upload", "doc.md", "-s", "ENG"])

        assert result.exit_code == 1
        assert "CONFLUENCE_TOKEN" in result.output

    def test_api_error(self, isolated, stub_converter, mock_client):
        mock_client.create_page.side_effect = ConfluenceError("create_page", "denied", 403)
        (isolated / "doc.md").write_text("# x\n")

        result = runner.invoke(app, ["upload", "doc.md", "-s", "ENG"])

        assert result.exit_code == 1
        assert "denied" in result.output


class TestUpdate:
    def test_updates_by_url(self, isolated, stub_converter, mock_client):
        (isolated / "doc.md").write_text("# Doc\n\nnew body\n")
        url = "https://acme.atlassian.net/wiki/spaces/ENG/pages/321/Doc"

        result = runner.invoke(app, ["update", "doc.md", url, "--title", "Renamed"])

        assert result.exit_code == 0, result.output
        page_id, title, _body, version = mock_client.update_page.call_args.args
        assert (page_id, title, version) == ("321", "Renamed", 3)
        assert "Page updated" in result.output

    def test_bad_page_reference(self, isolated, stub_converter, mock_client):
        (isolated / "doc.md").write_text("# Doc\n")
        result = runner.invoke(app, ["update", "doc.md", "garbage"])
        assert result.exit_code == 1
        mock_client.update_page.assert_not_awaited()


class TestQueries:
    def test_spaces(self, isolated, mock_client):
        mock_client.list_spaces = AsyncMock(
            return_value=[SpaceInfo(key="~5f1a", name="Dev", type="personal")]
        )
        result = runner.invoke(app, ["spaces", "--type", "personal", "-n", "5"])
        assert result.exit_code == 0
        mock_client.list_spaces.assert_awaited_once_with(5, "personal")
        assert "~5f1a" in result.output

    def test_spaces_bad_type(self, isolated):
        result = runner.invoke(app, ["spaces", "--type", "team"])
        assert result.exit_code == 1
        assert "Unknown space type" in result.output

    def test_search(self, isolated, mock_client):
        mock_client.search_pages = AsyncMock(
            return_value=[PageSearchHit(id="5", title="Runbook", space_key="OPS")]
        )
        result = runner.invoke(app, ["search", "runbook", "--space", "OPS"])
        assert result.exit_code == 0
        mock_client.search_pages.assert_awaited_once_with("runbook", "OPS", 10)
        assert "Runbook" in result.output

    def test_search_no_results(self, isolated, mock_client):
        mock_client.search_pages = AsyncMock(return_value=[])
        result = runner.invoke(app, ["search", "nothing"])
        assert result.exit_code == 0
        assert "No pages found" in result.output

    def test_whoami(self, isolated, mock_client):
        mock_client.get_current_user = AsyncMock(
            return_value=CurrentUser(account_id="5f1a", email="dev@acme.io", display_name="Dev")
        )
        result = runner.invoke(app, ["whoami"])
        assert result.exit_code == 0
        assert "~5f1a" in result.output


class TestConfigCommands:
    def test_init_then_show(self, isolated):
        result = runner.invoke(app, ["config", "init"])
        assert result.exit_code == 0
        assert (isolated / "md2confluence.yaml").exists()

        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "max_concurrency" in result.output

    def test_init_refuses_overwrite(self, isolated):
        (isolated / "md2confluence.yaml").write_text("log_level: debug\n")
        result = runner.invoke(app, ["config", "init"])
        assert result.exit_code == 1
        assert (isolated / "md2confluence.yaml").read_text() == "log_level: debug\n"

    def test_init_force(self, isolated):
        (isolated / "md2confluence.yaml").write_text("log_level: debug\n")
        result = runner.invoke(app, ["config", "init", "--force"])
        assert result.exit_code == 0
        assert "renderer:" in (isolated / "md2confluence.yaml").read_text()

    def test_invalid_config_file(self, isolated):
        (isolated / "bad.yaml").write_text("renderer:\n  max_concurrency: -1\n")
        result = runner.invoke(app, ["--config", "bad.yaml", "config", "show"])
        assert result.exit_code == 1
        assert "Invalid config" in result.output

    def test_missing_config_path(self, isolated):
        result = runner.invoke(app, ["--config", "nope.yaml", "config", "show"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output
