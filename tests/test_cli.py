"""Tests for the command line interface, with providers replaced by fakes."""

import json

import pytest
from click.testing import CliRunner

from chaptersmith.cli import main as cli_main

from conftest import FakeProvider


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    # basicConfig would bind a handler to the runner's temporary stdout
    monkeypatch.setattr(cli_main, "setup_logging", lambda verbose=False, log_file=None: None)


def test_generate_writes_book_and_summary(tmp_path, monkeypatch):
    provider = FakeProvider(default="# Chapter 1: Start\n\nSome words here.\n---\nSummary.")
    monkeypatch.setattr(cli_main, "create_provider", lambda name, config, metrics: provider)
    output = tmp_path / "book.md"

    result = CliRunner().invoke(cli_main.cli, [
        "generate", "--outline", "A short outline", "--chapters", "1", "--fragments", "2",
        "--output", str(output),
    ])

    assert result.exit_code == 0, result.output
    assert output.read_text(encoding="utf-8") == "# Chapter 1: Start\n\nSome words here.\n\nSome words here.\n"
    assert "Successfully generated 1 chapters" in result.output
    assert len(provider.prompts) == 2


def test_revise_with_automatic_delete(tmp_path, monkeypatch):
    report = json.dumps([{"match": "heart raced", "sentence": "Her heart raced.", "sentence_index": 2}])
    provider = FakeProvider(default=report)
    monkeypatch.setattr(cli_main, "create_providers", lambda names, config, metrics: [provider])
    source = tmp_path / "chapter.md"
    source.write_text("The night was cold. Her heart raced. She ran.\n", encoding="utf-8")
    report_path = tmp_path / "report.json"

    result = CliRunner().invoke(cli_main.cli, [
        "revise", str(source), "--pattern", "heart raced", "--auto", "delete",
        "--report", str(report_path),
    ])

    assert result.exit_code == 0, result.output
    revised = tmp_path / "chapter.revised.md"
    assert revised.read_text(encoding="utf-8") == "The night was cold. She ran.\n"
    edits = json.loads(report_path.read_text(encoding="utf-8"))
    assert edits[0]["operation"] == "delete"
    assert edits[0]["applied"] is True


def test_errors_exit_with_status_one(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setattr(cli_main, "load_dotenv", lambda: None)
    result = CliRunner().invoke(cli_main.cli, ["generate", "--outline", "Outline", "--chapters", "1"])
    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def test_categorize_writes_json(tmp_path, monkeypatch):
    provider = FakeProvider(["1", "2", "1"])
    monkeypatch.setattr(cli_main, "create_provider", lambda name, config, metrics: provider)
    items = tmp_path / "items.txt"
    items.write_text("Apple\nCarrot\n\nPear\n", encoding="utf-8")
    output = tmp_path / "categories.json"

    result = CliRunner().invoke(cli_main.cli, [
        "categorize", str(items), "--categories", "1. Fruit\n2. Vegetable", "--output", str(output),
    ])

    assert result.exit_code == 0, result.output
    assert json.loads(output.read_text(encoding="utf-8")) == {"1": ["Apple", "Pear"], "2": ["Carrot"]}
    assert "Categorized 3 items" in result.output
