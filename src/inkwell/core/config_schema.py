"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``.  Call
``Config.validated()`` to obtain a typed, validated ``InkwellConfig``
instance.  Existing dict-based access continues to work unchanged.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PathsConfig(BaseModel):
    """File-system paths used by the application."""

    data_dir: Path
    log_dir: Path | None = None

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class ChunkingSettings(BaseModel):
    """Token thresholds for the paragraph chunker."""

    target_tokens: int = Field(850, gt=0)
    max_tokens: int = Field(1000, gt=0)
    chars_per_token: int = Field(4, gt=0)

    @model_validator(mode="after")
    def _target_within_max(self) -> ChunkingSettings:
        if self.target_tokens > self.max_tokens:
            raise ValueError(f"target_tokens ({self.target_tokens}) must not exceed max_tokens ({self.max_tokens})")
        return self


class SearchSettings(BaseModel):
    """Similarity thresholds and hybrid weighting."""

    min_similarity: float = Field(0.3, ge=-1.0, le=1.0)
    hybrid_min_similarity: float = Field(0.2, ge=-1.0, le=1.0)
    semantic_weight: float = Field(0.7, ge=0.0, le=1.0)
    max_limit: int = Field(200, gt=0)


class PipelineSettings(BaseModel):
    """Rate limiting for bulk processing."""

    entry_delay: float = Field(0.5, ge=0.0)
    batch_size: int = Field(10, gt=0)
    batch_pause: float = Field(2.0, ge=0.0)
    debounce_seconds: float = Field(5.0, ge=0.0)


class LLMSettings(BaseModel):
    """Models used for chunk scoring, embeddings and narratives."""

    model_config = ConfigDict(extra="allow")

    scoring_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-large"
    narrative_model: str | None = None
    num_retries: int = Field(2, ge=0)
    timeout: int = Field(60, gt=0)


class InkwellConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so consumers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.inkwell-data"))
    chunking: ChunkingSettings = ChunkingSettings()
    search: SearchSettings = SearchSettings()
    pipeline: PipelineSettings = PipelineSettings()
    llm: LLMSettings = LLMSettings()
