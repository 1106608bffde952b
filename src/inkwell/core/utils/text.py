"""Text helpers: title normalization and case-insensitive matching."""


def normalize_title(title: str) -> str:
    """Normalize an event title for duplicate detection (lowercase, trimmed)."""
    if not title or not isinstance(title, str):
        return ""
    return title.lower().strip()


def count_occurrences(text: str, needle: str) -> int:
    """Count non-overlapping, case-insensitive occurrences of *needle* in *text*."""
    if not text or not needle:
        return 0
    return text.lower().count(needle.lower())


def contains_ci(text: str, needle: str) -> bool:
    """Case-insensitive substring test."""
    if not text or not needle:
        return False
    return needle.casefold() in text.casefold()

