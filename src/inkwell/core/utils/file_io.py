"""
Entry file helpers: frontmatter parsing and timestamp extraction.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

import yaml
from loguru import logger

_FILENAME_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})(?:[-_T](\d{2})[-:](\d{2})(?:[-:](\d{2}))?)?")


def parse_frontmatter(content: str) -> tuple[dict, str]:
    """
    Parse YAML frontmatter from markdown content.

    Returns:
        (frontmatter_dict, content_without_frontmatter).
        If no frontmatter found, returns ({}, original_content).
    """
    if not content.lstrip().startswith("---"):
        return {}, content

    try:
        parts = content.lstrip().split("---", 2)
        if len(parts) < 3:
            return {}, content

        yaml_content = parts[1].strip()
        remaining = parts[2].lstrip("\n")

        if yaml_content:
            yaml_content = yaml_content.replace("\t", "    ")
            frontmatter = yaml.safe_load(yaml_content) or {}
        else:
            frontmatter = {}

        if not isinstance(frontmatter, dict):
            return {}, content
        return frontmatter, remaining
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse markdown frontmatter: {e}")
        return {}, content


def parse_entry_datetime(name: str) -> datetime | None:
    """Parse a UTC timestamp from an entry filename.

    Accepts ``2025-01-31.md``, ``2025-01-31-08-30.md``,
    ``2025-01-31-08-30-15.md`` and ``[uuid]-[2025-01-31-08-30-15].md``.
    """
    match = _FILENAME_DATE_RE.search(name)
    if not match:
        return None
    day, hour, minute, second = match.groups()
    try:
        parsed = datetime.strptime(day, "%Y-%m-%d")
        if hour is not None:
            parsed = parsed.replace(hour=int(hour), minute=int(minute), second=int(second or 0))
    except ValueError:
        return None
    return parsed.replace(tzinfo=UTC)


def coerce_datetime(value: object) -> datetime | None:
    """Best-effort conversion of a frontmatter value to an aware UTC datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if hasattr(value, "year") and hasattr(value, "month") and hasattr(value, "day"):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, str):
        return parse_entry_datetime(value)
    return None
