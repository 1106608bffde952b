"""Paragraph-based chunking of journal entries.

Splits entry text on blank lines and packs paragraphs into token-bounded
chunks. Token counts are estimated as ``len(text) // chars_per_token``;
no tokenizer is involved, so chunking is cheap, total and deterministic.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from loguru import logger

from .config import ChunkingConfig
from .models import Chunk

PARAGRAPH_SEPARATOR = "\n\n"

# (trimmed paragraph text, start offset, end offset) in the source text
_Paragraph = tuple[str, int, int]


def _paragraphs(text: str) -> list[_Paragraph]:
    """Split on blank lines, keeping exact source offsets of trimmed paragraphs."""
    paragraphs: list[_Paragraph] = []
    position = 0
    for piece in text.split(PARAGRAPH_SEPARATOR):
        piece_start = position
        position += len(piece) + len(PARAGRAPH_SEPARATOR)

        stripped = piece.strip()
        if not stripped:
            continue
        start = piece_start + (len(piece) - len(piece.lstrip()))
        paragraphs.append((stripped, start, start + len(stripped)))
    return paragraphs


class Chunker:
    """Packs paragraphs into chunks of roughly ``target_tokens``.

    Example::

        chunker = Chunker()
        chunks = chunker.chunk(entry.text, entry.date, entry_id=entry.id)
    """

    def __init__(self, config: ChunkingConfig | None = None):
        self.config = config or ChunkingConfig()

    def estimate_tokens(self, text: str) -> int:
        return len(text) // self.config.chars_per_token

    def chunk(self, text: str, entry_date: datetime, entry_id: str | None = None) -> list[Chunk]:
        """Split *text* into ordered chunks that inherit *entry_date*.

        Args:
            text: Raw entry text.
            entry_date: Date every chunk inherits.
            entry_id: Owning entry. Derived from the text when omitted so
                repeated calls still produce identical chunk ids.

        Returns:
            Chunks in source order. Empty text yields an empty list.
        """
        if not text:
            return []

        if entry_id is None:
            entry_id = str(uuid.uuid5(uuid.NAMESPACE_OID, text))

        spans: list[_Paragraph] = []
        buffer: list[_Paragraph] = []

        def flush() -> None:
            spans.append((self._join(buffer), buffer[0][1], buffer[-1][2]))
            buffer.clear()

        for paragraph in _paragraphs(text):
            if buffer:
                candidate = self._join(buffer) + PARAGRAPH_SEPARATOR + paragraph[0]
                if self.estimate_tokens(candidate) > self.config.max_tokens:
                    flush()
            buffer.append(paragraph)

            if self.estimate_tokens(self._join(buffer)) >= self.config.target_tokens:
                flush()

        if buffer:
            flush()

        if not spans:
            # Whitespace-only text still yields one chunk covering everything
            spans.append((text, 0, len(text)))

        chunks = [
            self._make_chunk(chunk_text, entry_id, entry_date, index, start, end)
            for index, (chunk_text, start, end) in enumerate(spans)
        ]
        logger.debug(f"Chunked entry {entry_id} into {len(chunks)} chunk(s)")
        return chunks

    @staticmethod
    def _join(buffer: list[_Paragraph]) -> str:
        return PARAGRAPH_SEPARATOR.join(p[0] for p in buffer)

    def _make_chunk(
        self,
        chunk_text: str,
        entry_id: str,
        entry_date: datetime,
        index: int,
        start: int,
        end: int,
    ) -> Chunk:
        return Chunk(
            id=str(uuid.uuid5(uuid.NAMESPACE_OID, f"{entry_id}:{index}:{start}:{end}")),
            entry_id=entry_id,
            text=chunk_text,
            start_char=start,
            end_char=end,
            date=entry_date,
            token_count=self.estimate_tokens(chunk_text),
        )
