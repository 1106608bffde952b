"""Tests for the CLI entry point."""

import json
import os

import pytest
import yaml
from click.testing import CliRunner

from inkwell.core.cli import main
from inkwell.journal.providers import LiteLLMEmbeddingProvider, LLMNarrator, LLMScoringOracle
from inkwell.journal.summarize import StatisticalNarrator
from tests.fakes import FakeEmbedder, FakeOracle


@pytest.fixture
def fast_config(tmp_dir):
    path = os.path.join(tmp_dir, "config.yaml")
    with open(path, "w") as f:
        yaml.dump({"pipeline": {"entry_delay": 0, "batch_pause": 0}}, f)
    return path


@pytest.fixture
def entries_dir(tmp_dir):
    path = os.path.join(tmp_dir, "entries")
    os.makedirs(path)
    with open(os.path.join(path, "2025-01-05.md"), "w") as f:
        f.write("Went for a hike with family. Felt happy.")
    with open(os.path.join(path, "2025-01-20.md"), "w") as f:
        f.write("Another deadline at work. Sad evening.")
    return path


@pytest.fixture
def fake_providers(monkeypatch):
    monkeypatch.setattr(LLMScoringOracle, "from_config", classmethod(lambda cls, config: FakeOracle()))
    monkeypatch.setattr(LiteLLMEmbeddingProvider, "from_config", classmethod(lambda cls, config: FakeEmbedder()))
    monkeypatch.setattr(LLMNarrator, "from_config", classmethod(lambda cls, config: StatisticalNarrator()))


class TestCliGroup:
    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Inkwell" in result.output
        assert "process" in result.output
        assert "retrieve" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_config_exits(self, tmp_dir):
        path = os.path.join(tmp_dir, "bad.yaml")
        with open(path, "w") as f:
            yaml.dump({"search": {"semantic_weight": 3}}, f)
        runner = CliRunner()
        result = runner.invoke(main, ["--config", path, "process", tmp_dir])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestProcessCommand:
    def test_missing_directory(self, fast_config, tmp_dir):
        runner = CliRunner()
        result = runner.invoke(main, ["--config", fast_config, "process", os.path.join(tmp_dir, "missing")])
        assert result.exit_code == 1
        assert "Not a directory" in result.output

    def test_process_prints_report_and_months(self, fast_config, entries_dir, fake_providers):
        runner = CliRunner()
        result = runner.invoke(main, ["--config", fast_config, "process", entries_dir])
        assert result.exit_code == 0, result.output
        assert "2025-01: happiness" in result.output
        assert "2025: happiness" in result.output

    def test_process_as_json(self, fast_config, entries_dir, fake_providers):
        runner = CliRunner()
        result = runner.invoke(main, ["--config", fast_config, "process", entries_dir, "--as-json", "--no-summaries"])
        assert result.exit_code == 0
        start = result.stdout.index("{")
        payload = json.loads(result.stdout[start:])
        assert [a["entryId"] for a in payload["analytics"]] == ["2025-01-05", "2025-01-20"]
        assert payload["months"] == []


class TestRetrieveCommand:
    def test_invalid_json(self, fast_config, tmp_dir):
        runner = CliRunner()
        result = runner.invoke(main, ["--config", fast_config, "retrieve", "{nope", "--entries", tmp_dir])
        assert result.exit_code == 2
        assert "not valid JSON" in result.output

    def test_non_object_query(self, fast_config, tmp_dir):
        runner = CliRunner()
        result = runner.invoke(main, ["--config", fast_config, "retrieve", "[1, 2]", "--entries", tmp_dir])
        assert result.exit_code == 2

    def test_invalid_scope(self, fast_config, tmp_dir):
        runner = CliRunner()
        result = runner.invoke(main, ["--config", fast_config, "retrieve", '{"scope": "bogus"}', "--entries", tmp_dir])
        assert result.exit_code == 2
        assert "Invalid scope" in result.output

    def test_retrieve_chunks(self, fast_config, entries_dir, fake_providers):
        runner = CliRunner()
        query = json.dumps({"scope": "chunks", "sort": "recency", "limit": 5})
        result = runner.invoke(main, ["--config", fast_config, "retrieve", query, "--entries", entries_dir])
        assert result.exit_code == 0, result.output
        assert '"count": 2' in result.output
        assert '"source": "chunks"' in result.output
