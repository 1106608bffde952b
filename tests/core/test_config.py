"""Tests for inkwell.core.config."""

import json
import os

import pytest
import yaml

from inkwell.core.config import Config
from inkwell.core.exceptions import ConfigurationError


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.get("paths.data_dir").endswith(".inkwell-data")
        assert config.get("chunking.max_tokens") == 1000
        assert config.get("chunking.target_tokens") == 850
        assert config.get("search.semantic_weight") == 0.7
        assert config.get("pipeline.entry_delay") == 0.5

    def test_custom_data_dir(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        assert config.get("paths.data_dir") == tmp_dir
        assert config.get("paths.log_dir") == os.path.join(tmp_dir, "logs")
        assert config.get_data_dir() == tmp_dir

    def test_yaml_config_file(self, tmp_config_file, tmp_dir):
        config = Config(config_file=tmp_config_file, data_dir=tmp_dir)
        assert config.get("chunking.max_tokens") == 500
        assert config.get("llm.scoring_model") == "anthropic/claude-sonnet-4-20250514"
        # Untouched siblings keep their defaults
        assert config.get("chunking.chars_per_token") == 4

    def test_json_config_file(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "config.json")
        with open(config_path, "w") as f:
            json.dump({"search": {"min_similarity": 0.5}}, f)

        config = Config(config_file=config_path, data_dir=tmp_dir)
        assert config.get("search.min_similarity") == 0.5

    def test_missing_file_uses_defaults(self, tmp_dir):
        config = Config(config_file=os.path.join(tmp_dir, "nope.yaml"), data_dir=tmp_dir)
        assert config.get("chunking.max_tokens") == 1000

    def test_non_mapping_file_raises(self, tmp_dir):
        config_path = os.path.join(tmp_dir, "config.yaml")
        with open(config_path, "w") as f:
            yaml.dump(["a", "b"], f)

        with pytest.raises(ConfigurationError):
            Config(config_file=config_path, data_dir=tmp_dir)

    def test_env_overrides_file(self, tmp_config_file, tmp_dir, monkeypatch):
        monkeypatch.setenv("INKWELL_LLM__SCORING_MODEL", "openai/gpt-4o")
        config = Config(config_file=tmp_config_file, data_dir=tmp_dir)
        assert config.get("llm.scoring_model") == "openai/gpt-4o"

    def test_custom_env_prefix(self, monkeypatch, tmp_dir):
        monkeypatch.setenv("JOURNAL_PIPELINE__BATCH_SIZE", "5")
        config = Config(env_prefix="JOURNAL_", data_dir=tmp_dir)
        assert config.get("pipeline.batch_size") == "5"

    def test_get_missing_key(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        assert config.get("nonexistent.key") is None
        assert config.get("nonexistent.key", "fallback") == "fallback"

    def test_set(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        config.set("custom.nested.key", "value")
        assert config.get("custom.nested.key") == "value"

    def test_extra_defaults(self, tmp_dir):
        config = Config(data_dir=tmp_dir, defaults={"search": {"max_limit": 50}})
        assert config.get("search.max_limit") == 50
        assert config.get("search.min_similarity") == 0.3
