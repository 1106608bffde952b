"""Shared setup logic for CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

import click

INKWELL_DIR = Path.home() / ".inkwell"
CONFIG_PATH = INKWELL_DIR / "config.yaml"


def load_config(config_file: str | None = None):
    """Load config from *config_file*, else ~/.inkwell/config.yaml when present."""
    from inkwell.core.config import Config
    from inkwell.core.exceptions import ConfigurationError

    path = config_file or (str(CONFIG_PATH) if CONFIG_PATH.exists() else None)
    try:
        config = Config(config_file=path)
        config.validated()
    except ConfigurationError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)
    return config


def build_pipeline(config, entries_dir: str):
    """Wire a pipeline over a markdown directory with an in-memory store."""
    from inkwell.journal.chunker import Chunker
    from inkwell.journal.config import ChunkingConfig, PipelineConfig
    from inkwell.journal.pipeline import AnalyticsPipeline
    from inkwell.journal.providers import LiteLLMEmbeddingProvider, LLMNarrator, LLMScoringOracle
    from inkwell.journal.store import InMemoryAnalyticsStore, MarkdownEntrySource
    from inkwell.journal.summarize import SummarizationService

    if not Path(entries_dir).expanduser().is_dir():
        click.echo(f"Not a directory: {entries_dir}", err=True)
        sys.exit(1)

    store = InMemoryAnalyticsStore()
    return AnalyticsPipeline(
        entry_source=MarkdownEntrySource(entries_dir),
        store=store,
        oracle=LLMScoringOracle.from_config(config),
        embedder=LiteLLMEmbeddingProvider.from_config(config),
        chunker=Chunker(ChunkingConfig.from_config(config)),
        config=PipelineConfig.from_config(config),
        summarizer=SummarizationService(store, narrator=LLMNarrator.from_config(config)),
    )


def echo_report(report) -> None:
    click.echo(str(report))
    for entry_id, error in report.failures:
        click.echo(f"  failed: {entry_id}: {error}")
