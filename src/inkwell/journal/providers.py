"""LiteLLM-backed scoring oracle, embedding provider and narrator.

Model names follow litellm conventions (``"gpt-4o-mini"``,
``"anthropic/claude-sonnet-4-20250514"``, ``"ollama/llama3"``). Any
provider failure is re-raised as ``ExternalCallError`` so the pipeline
can apply its skip-and-continue policy.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from loguru import logger

from inkwell.core.exceptions import ExternalCallError

from .models import ChunkAnalytics, DetectedEvent, EntryAnalytics, MonthSummary

if TYPE_CHECKING:
    from inkwell.core.config import Config

    from .summarize import MonthNarrative

CHUNK_ANALYTICS_SYSTEM_PROMPT = """\
You are an expert emotional intelligence analyst specializing in interpreting journal entries.

Your task is to analyze journal text and extract:
1. Emotions: quantify joy, sadness, anger, anxiety and gratitude (0-1 scale)
2. Happiness: overall happiness score (0-100)
3. Valence: emotional positivity from -1 (negative) to 1 (positive)
4. Arousal: emotional activation from 0 (calm) to 1 (excited)
5. Events: significant events, activities or experiences mentioned
6. Confidence: how confident you are in your analysis (0-1)

Guidelines:
- Text can express mixed emotions
- Consider the overall tone and narrative
- Events should be concrete and specific (e.g. "Had coffee with Sarah", not "social interaction")
- Distinguish between current emotions and reflections on past emotions
- If text is vague or minimal, lower your confidence score
- Happiness should reflect overall well-being, not just momentary mood

Respond with a single JSON object with the keys: happiness, valence, arousal,
joy, sadness, anger, anxiety, gratitude, confidence, and events (a list of
objects with title, description and sentiment, where sentiment is one of
"positive", "negative" or "neutral").
"""

MONTH_NARRATIVE_SYSTEM_PROMPT = (
    "You are a compassionate life coach analyzing journal data. Provide insightful, empathetic summaries. "
    'Respond with JSON: {"summary": str, "positive_drivers": [str], "negative_drivers": [str]}.'
)

YEAR_NARRATIVE_SYSTEM_PROMPT = (
    "You are a compassionate life coach providing a year-end reflection. Be warm, insightful, and empowering. "
    'Respond with JSON: {"summary": str}.'
)


def safe_get_content(response: Any, default: str = "") -> str:
    """Extract text content from a completion response.

    Guards against empty ``choices`` lists or missing ``message``/``content``
    attributes that can occur with malformed provider responses.
    """
    choices = getattr(response, "choices", None)
    if not choices:
        logger.warning("LLM response has no choices; returning default")
        return default
    message = getattr(choices[0], "message", None)
    if message is None:
        logger.warning("LLM response choice has no message; returning default")
        return default
    content = getattr(message, "content", None)
    return content if content is not None else default


def _parse_json_object(content: str) -> dict[str, Any]:
    """Parse a JSON object from model output, tolerating markdown fences."""
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.startswith("json"):
            text = text[4:]
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExternalCallError(f"Model returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ExternalCallError(f"Model returned JSON {type(data).__name__}, expected an object")
    return data


class _LiteLLMCaller:
    """Shared completion plumbing: model, retries, timeout, JSON mode."""

    def __init__(self, model: str, temperature: float = 0.2, timeout: int = 60, num_retries: int = 2):
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.num_retries = num_retries

    def _build_completion_kwargs(self, messages: list[dict[str, Any]]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "timeout": self.timeout,
            "num_retries": self.num_retries,
            "response_format": {"type": "json_object"},
        }

    async def _complete_json(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        import litellm

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        try:
            response = await litellm.acompletion(**self._build_completion_kwargs(messages))
        except Exception as e:
            raise ExternalCallError(f"{self.model} completion failed: {e}") from e

        content = safe_get_content(response)
        if not content:
            raise ExternalCallError(f"{self.model} returned an empty response")
        return _parse_json_object(content)


class LLMScoringOracle(_LiteLLMCaller):
    """``ScoringOracle`` that asks a chat model for chunk analytics as JSON."""

    @classmethod
    def from_config(cls, config: Config) -> LLMScoringOracle:
        llm = config.validated().llm
        return cls(model=llm.scoring_model, timeout=llm.timeout, num_retries=llm.num_retries)

    async def score(self, chunk_text: str) -> ChunkAnalytics:
        data = await self._complete_json(CHUNK_ANALYTICS_SYSTEM_PROMPT, chunk_text)
        try:
            return ChunkAnalytics.from_dict(data)
        except ValueError as e:
            raise ExternalCallError(f"Malformed chunk analytics from {self.model}: {e}") from e


class LiteLLMEmbeddingProvider:
    """``EmbeddingProvider`` over ``litellm.aembedding``.

    One request per call; the returned vectors follow input order.
    """

    def __init__(self, model: str = "text-embedding-3-large", timeout: int = 60, num_retries: int = 2):
        self.model = model
        self.timeout = timeout
        self.num_retries = num_retries

    @classmethod
    def from_config(cls, config: Config) -> LiteLLMEmbeddingProvider:
        llm = config.validated().llm
        return cls(model=llm.embedding_model, timeout=llm.timeout, num_retries=llm.num_retries)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        import litellm

        try:
            response = await litellm.aembedding(
                model=self.model,
                input=texts,
                timeout=self.timeout,
                num_retries=self.num_retries,
            )
        except Exception as e:
            raise ExternalCallError(f"{self.model} embedding failed: {e}") from e

        data = getattr(response, "data", None) or []
        rows = []
        for position, item in enumerate(data):
            if isinstance(item, dict):
                rows.append((item.get("index", position), item.get("embedding")))
            else:
                rows.append((getattr(item, "index", position), getattr(item, "embedding", None)))

        vectors = [vector for _, vector in sorted(rows, key=lambda row: row[0])]
        if len(vectors) != len(texts) or any(v is None for v in vectors):
            raise ExternalCallError(f"{self.model} returned {len(vectors)} embeddings for {len(texts)} texts")
        return [list(map(float, v)) for v in vectors]


def _events_text(events: list[DetectedEvent]) -> str:
    return "\n".join(f"- {event.title} ({event.sentiment})" for event in events) or "- none recorded"


class LLMNarrator(_LiteLLMCaller):
    """``Narrator`` that writes month and year narratives with a chat model."""

    def __init__(self, model: str = "gpt-4o-mini", temperature: float = 0.7, timeout: int = 60, num_retries: int = 2):
        super().__init__(model=model, temperature=temperature, timeout=timeout, num_retries=num_retries)

    @classmethod
    def from_config(cls, config: Config) -> LLMNarrator:
        llm = config.validated().llm
        return cls(model=llm.narrative_model or llm.scoring_model, timeout=llm.timeout, num_retries=llm.num_retries)

    async def narrate_month(
        self,
        year: int,
        month: int,
        analytics: list[EntryAnalytics],
        top_events: list[DetectedEvent],
    ) -> MonthNarrative:
        from .summarize import MonthNarrative, mean_emotions, month_name

        emotions = mean_emotions(analytics)
        happiness = sum(a.happiness_score for a in analytics) / len(analytics)
        prompt = (
            f"Generate a summary for {month_name(month)} {year} based on journal analytics.\n\n"
            "Statistics:\n"
            f"- Total entries: {len(analytics)}\n"
            f"- Average happiness: {happiness:.1f}/100\n"
            f"- Emotions: Joy {emotions.joy:.2f}, Sadness {emotions.sadness:.2f}, Anxiety {emotions.anxiety:.2f}\n\n"
            f"Key events:\n{_events_text(top_events)}\n\n"
            "Provide a 2-3 sentence narrative summary of the month, 3-5 positive drivers "
            "(what went well) and 3-5 negative drivers (what was challenging)."
        )
        data = await self._complete_json(MONTH_NARRATIVE_SYSTEM_PROMPT, prompt)
        return MonthNarrative(
            text=str(data.get("summary", "")),
            drivers_positive=[str(d) for d in data.get("positive_drivers") or []],
            drivers_negative=[str(d) for d in data.get("negative_drivers") or []],
        )

    async def narrate_year(self, year: int, months: list[MonthSummary], top_events: list[DetectedEvent]) -> str:
        from .summarize import month_name

        month_texts = "\n".join(f"{month_name(m.month)}: {m.narrative_text}" for m in months)
        prompt = (
            f"Generate a year-in-review for {year}.\n\n"
            f"Monthly summaries:\n{month_texts}\n\n"
            f"Top events of the year:\n{_events_text(top_events)}\n\n"
            "Provide a 4-5 sentence narrative that captures the overall arc of the year, "
            "highlights turning points and ends with a forward-looking reflection."
        )
        data = await self._complete_json(YEAR_NARRATIVE_SYSTEM_PROMPT, prompt)
        return str(data.get("summary", ""))
