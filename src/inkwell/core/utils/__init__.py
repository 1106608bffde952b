"""Shared utilities: logging setup, text helpers, entry file parsing, async bridging."""

from .async_helpers import run_async_safely
from .file_io import coerce_datetime, parse_entry_datetime, parse_frontmatter
from .logging import setup_logging
from .text import contains_ci, count_occurrences, normalize_title

__all__ = [
    "coerce_datetime",
    "contains_ci",
    "count_occurrences",
    "normalize_title",
    "parse_entry_datetime",
    "parse_frontmatter",
    "run_async_safely",
    "setup_logging",
]
