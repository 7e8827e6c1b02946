"""End-to-end CLI tests on a sandbox content root with Typer's CliRunner."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from sheaf_cli.cli import app
from tests.framework import mk_post, write_file

runner = CliRunner()

CONFIG = """\
media_folder: static/uploads
i18n:
  locales: [en, fr]
  structure: multiple_folders
collections:
  - name: posts
    folder: content/posts
    i18n: true
  - name: pages
    files:
      - name: about
        file: content/about.md
"""


@pytest.fixture()
def root(tmp_path: Path) -> Path:
    root = tmp_path / "site"
    write_file(root / "admin/config.yml", CONFIG)
    write_file(root / "content/posts/en/hello.md", mk_post("Hello", body="Hi there"))
    write_file(root / "content/posts/fr/hello.md", mk_post("Bonjour", body="Salut"))
    write_file(root / "content/about.md", mk_post("About"))
    write_file(root / "static/uploads/cat.jpg", "binary")
    return root


def test_sync_json(root: Path):
    result = runner.invoke(app, ["sync", str(root), "--json"])
    assert result.exit_code == 0, result.stdout

    data = json.loads(result.stdout)
    assert data["branch"] == "main"
    assert data["stats"]["fetched"] == 3
    assert data["errors"] == []
    entries = {e["slug"]: e for e in data["entries"]}
    assert sorted(entries) == ["about", "hello"]
    assert entries["hello"]["locales"]["fr"]["content"]["title"] == "Bonjour"
    assert entries["about"]["file"] == "about"
    assert data["assets"] == [
        {"path": "static/uploads/cat.jpg", "kind": "image", "size": 6, "collection": None}
    ]
    assert (root / ".sheaf" / "cache.json").exists()

    again = json.loads(runner.invoke(app, ["sync", str(root), "--json"]).stdout)
    assert again["stats"]["fetched"] == 0
    assert again["stats"]["file_list_from_cache"] is True


def test_sync_table_output(root: Path):
    result = runner.invoke(app, ["sync", str(root)])
    assert result.exit_code == 0
    assert "hello" in result.stdout
    assert "2 entries, 1 assets" in result.stdout
    assert "Sync completed successfully" in result.stdout


def test_sync_reports_parse_errors(root: Path):
    write_file(root / "content/posts/en/broken.md", "---\ntitle: [oops\n---\nBody\n")
    result = runner.invoke(app, ["sync", str(root)])
    assert result.exit_code == 1
    assert "content/posts/en/broken.md" in result.stdout
    assert "Sync completed successfully" not in result.stdout


def test_missing_config_exits_2(tmp_path: Path):
    result = runner.invoke(app, ["sync", str(tmp_path)])
    assert result.exit_code == 2
    assert "Site config not found" in result.stdout


def test_cache_option_and_env(root: Path, tmp_path: Path, monkeypatch):
    explicit = tmp_path / "explicit.json"
    assert runner.invoke(app, ["sync", str(root), "--cache", str(explicit)]).exit_code == 0
    assert explicit.exists()

    from_env = tmp_path / "env.json"
    monkeypatch.setenv("SHEAF_CACHE", str(from_env))
    assert runner.invoke(app, ["sync", str(root)]).exit_code == 0
    assert from_env.exists()
    assert not (root / ".sheaf").exists()


def test_files_classifies_the_tree(root: Path):
    result = runner.invoke(app, ["files", str(root), "--all"])
    assert result.exit_code == 0
    assert "content/about.md" in result.stdout
    assert "static/uploads/cat.jpg" in result.stdout
    assert "4 of 5 files classified" in result.stdout


def test_parse_prints_json(tmp_path: Path):
    path = tmp_path / "post.md"
    write_file(path, mk_post("Hello", tags="[a, b]"))
    result = runner.invoke(app, ["parse", str(path)])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"title": "Hello", "tags": ["a", "b"], "body": "Body"}

    toml = tmp_path / "hugo.md"
    write_file(toml, '+++\ntitle = "Hi"\n+++\nText\n')
    result = runner.invoke(app, ["parse", str(toml), "--format", "toml-frontmatter"])
    assert json.loads(result.stdout) == {"title": "Hi", "body": "Text"}


def test_parse_failure_exits_1(tmp_path: Path):
    path = tmp_path / "bad.json"
    write_file(path, "{not json")
    result = runner.invoke(app, ["parse", str(path)])
    assert result.exit_code == 1
    assert "Parse failed" in result.stdout

    assert runner.invoke(app, ["parse", str(tmp_path / "missing.md")]).exit_code == 2


def test_i18n_prints_effective_config(root: Path):
    result = runner.invoke(app, ["i18n", "posts", "--root", str(root)])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["i18n_enabled"] is True
    assert data["structure"] == "multiple_folders"
    assert data["all_locales"] == ["en", "fr"]
    assert data["default_locale"] == "en"

    pages = json.loads(runner.invoke(app, ["i18n", "pages", "--file", "about", "--root", str(root)]).stdout)
    assert pages["i18n_enabled"] is False

    assert runner.invoke(app, ["i18n", "nope", "--root", str(root)]).exit_code == 2


def test_show_prints_entry_as_yaml(root: Path):
    result = runner.invoke(app, ["show", "posts", "hello", "--locale", "fr", "--root", str(root)])
    assert result.exit_code == 0
    assert "# fr: content/posts/fr/hello.md" in result.stdout
    assert "title: Bonjour" in result.stdout
    assert "body: Salut" in result.stdout
    assert "title: Hello" not in result.stdout

    missing = runner.invoke(app, ["show", "posts", "nope", "--root", str(root)])
    assert missing.exit_code == 1


def test_cache_info_and_clear(root: Path):
    runner.invoke(app, ["sync", str(root)])

    info = runner.invoke(app, ["cache", "info", str(root)])
    assert info.exit_code == 0
    assert "Records: 4 (3 with content)" in info.stdout

    cleared = runner.invoke(app, ["cache", "clear", str(root)])
    assert cleared.exit_code == 0
    assert "Cache cleared" in cleared.stdout

    info = runner.invoke(app, ["cache", "info", str(root)])
    assert "Last commit: -" in info.stdout
    assert "Records: 0 (0 with content)" in info.stdout
