"""Tests for inkwell.journal.config."""

import pytest

from inkwell.core.config import Config
from inkwell.core.exceptions import ConfigurationError
from inkwell.journal.config import ChunkingConfig, PipelineConfig, SearchConfig


class TestChunkingConfig:
    def test_defaults(self):
        config = ChunkingConfig()
        assert config.target_tokens == 850
        assert config.max_tokens == 1000
        assert config.chars_per_token == 4

    def test_from_config(self, tmp_config_file, tmp_dir):
        config = ChunkingConfig.from_config(Config(config_file=tmp_config_file, data_dir=tmp_dir))
        assert config.target_tokens == 400
        assert config.max_tokens == 500

    def test_from_invalid_config(self, tmp_dir):
        raw = Config(data_dir=tmp_dir)
        raw.set("chunking.max_tokens", 0)
        with pytest.raises(ConfigurationError):
            ChunkingConfig.from_config(raw)


class TestSearchConfig:
    def test_defaults(self):
        config = SearchConfig()
        assert config.min_similarity == 0.3
        assert config.hybrid_min_similarity == 0.2
        assert config.semantic_weight == 0.7
        assert config.max_limit == 200
        assert config.tfidf_ngram_range == (1, 2)

    def test_from_config_env_override(self, tmp_dir, monkeypatch):
        monkeypatch.setenv("INKWELL_SEARCH__SEMANTIC_WEIGHT", "0.5")
        config = SearchConfig.from_config(Config(data_dir=tmp_dir))
        assert config.semantic_weight == 0.5
        assert config.tfidf_max_features == 10000


class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig()
        assert config.entry_delay == 0.5
        assert config.batch_size == 10
        assert config.batch_pause == 2.0
        assert config.debounce_seconds == 5.0

    def test_from_config(self, tmp_dir):
        raw = Config(data_dir=tmp_dir)
        raw.set("pipeline.batch_size", 3)
        assert PipelineConfig.from_config(raw).batch_size == 3
