from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from contentguard.config.settings import Settings

DEFAULT_BANNED_PHRASES: tuple[str, ...] = (
    "confidential",
    "do not share",
    "internal use only",
    "secret",
    "classified",
)
DEFAULT_STOPWORDS: tuple[str, ...] = (
    "the", "a", "an", "and", "or", "but", "in",
    "on", "at", "to", "for", "of", "with", "by",
)


class Decision(str, Enum):
    ALLOW = "allow"
    BLOCK = "block"


@dataclass(frozen=True)
class AnalysisConfig:
    """Caller-owned analysis configuration, read-only to the engine."""

    entropy_threshold: float = 4.8
    risk_threshold: float = 0.6
    banned_phrases: tuple[str, ...] = DEFAULT_BANNED_PHRASES
    stopwords: tuple[str, ...] = DEFAULT_STOPWORDS
    max_words: int = 10
    pii_detectors: tuple[str, ...] = ("digit_run",)

    PRESETS: ClassVar[tuple[str, ...]] = ("default", "high_security", "low_security")

    @classmethod
    def from_settings(cls, settings: Settings) -> AnalysisConfig:
        return cls(
            entropy_threshold=settings.entropy_threshold,
            risk_threshold=settings.risk_threshold,
            banned_phrases=tuple(settings.banned_phrases),
            stopwords=tuple(settings.stopwords),
            max_words=settings.max_words,
            pii_detectors=tuple(settings.pii_detectors),
        )

    def preset(self, name: str) -> AnalysisConfig:
        """Derive a named security preset from this configuration.

        ``high_security`` lowers both thresholds and extends the phrase list,
        ``low_security`` raises them and keeps only the two strongest phrases.
        """
        if name == "default":
            return self
        if name == "high_security":
            extra = ("restricted", "sensitive", "private", "proprietary", "trade secret")
            return replace(
                self,
                entropy_threshold=3.5,
                risk_threshold=0.5,
                banned_phrases=self.banned_phrases
                + tuple(p for p in extra if p not in self.banned_phrases),
            )
        if name == "low_security":
            return replace(
                self,
                entropy_threshold=6.0,
                risk_threshold=0.9,
                banned_phrases=("confidential", "secret"),
            )
        raise ValueError(f"Unknown preset '{name}'. Choose from: {list(self.PRESETS)}")

    def with_overrides(self, overrides: dict[str, Any]) -> AnalysisConfig:
        """Return a copy with validated override values applied."""
        values = {
            key: tuple(value) if isinstance(value, list) else value
            for key, value in overrides.items()
        }
        return replace(self, **values)


@dataclass(frozen=True)
class WordCount:
    word: str
    count: int


@dataclass(frozen=True)
class PiiMatch:
    """A PII-shaped substring; ``position`` is a character offset in the content."""

    type: str
    value: str
    position: int


@dataclass(frozen=True)
class ContentCounts:
    """Running detector totals over all content seen so far."""

    content_length: int = 0
    unique_word_count: int = 0
    banned_phrase_count: int = 0
    pii_pattern_count: int = 0


@dataclass(frozen=True)
class ProcessingStats:
    total_chunks: int = 0
    total_content_length: int = 0
    unique_word_count: int = 0
    banned_phrase_count: int = 0
    pii_pattern_count: int = 0
    processing_time_ms: float = 0.0

    def with_counts(self, counts: ContentCounts) -> ProcessingStats:
        return replace(
            self,
            total_content_length=counts.content_length,
            unique_word_count=counts.unique_word_count,
            banned_phrase_count=counts.banned_phrase_count,
            pii_pattern_count=counts.pii_pattern_count,
        )


@dataclass(frozen=True)
class AnalysisResult:
    """Final verdict for one file."""

    risk_score: float
    decision: Decision
    reasons: list[str]
    entropy: float
    top_words: list[WordCount] = field(default_factory=list)
    banned_phrases: list[str] = field(default_factory=list)
    pii_patterns: list[PiiMatch] = field(default_factory=list)
    stats: ProcessingStats = field(default_factory=ProcessingStats)
    engine: str = ""
    fallback_used: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["decision"] = self.decision.value
        return payload
