"""Shared test fixtures for inkwell."""

import os
import tempfile
from datetime import UTC, datetime

import pytest

from inkwell.journal.models import JournalEntry
from inkwell.journal.store import InMemoryAnalyticsStore
from tests.fakes import FakeEmbedder, FakeEntrySource, FakeOracle


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {"data_dir": os.path.join(tmp_dir, "data")},
        "chunking": {"target_tokens": 400, "max_tokens": 500},
        "llm": {"scoring_model": "anthropic/claude-sonnet-4-20250514"},
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def store():
    return InMemoryAnalyticsStore()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def sample_entries():
    return [
        JournalEntry(
            id="2025-01-05",
            text="Went for a hike with family.\n\nFelt happy the whole day.",
            date=datetime(2025, 1, 5, 9, 0, tzinfo=UTC),
        ),
        JournalEntry(
            id="2025-01-20",
            text="Work was heavy. Another deadline slipped.\n\nSad evening.",
            date=datetime(2025, 1, 20, 21, 0, tzinfo=UTC),
        ),
        JournalEntry(
            id="2025-02-02",
            text="Coffee at the beach. Quiet and happy.",
            date=datetime(2025, 2, 2, 8, 30, tzinfo=UTC),
        ),
    ]


@pytest.fixture
def entry_source(sample_entries):
    return FakeEntrySource(sample_entries)
