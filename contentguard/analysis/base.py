import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import ClassVar

from contentguard.analysis.models import (
    AnalysisConfig,
    AnalysisResult,
    ContentCounts,
    ProcessingStats,
)


class AnalysisSession(ABC):
    """Per-file analysis state fed one chunk at a time.

    Chunk handling is two-phase: ``stage`` computes the post-chunk state
    without touching the session, ``commit`` applies it. A staged chunk that
    is never committed leaves the session exactly as it was.
    """

    @property
    @abstractmethod
    def content(self) -> str:
        """All committed content, in order."""

    @abstractmethod
    def stage(self, text: str) -> object:
        """Prepare ``text`` for commit. Must not mutate the session."""

    @abstractmethod
    def commit(self, staged: object) -> ContentCounts:
        """Apply a value previously returned by ``stage`` on this session."""

    @abstractmethod
    def result(self, stats: ProcessingStats) -> AnalysisResult:
        """Full verdict over the committed content."""


class BaseAnalyzer(ABC):
    """Contract for all analysis engines."""

    name: ClassVar[str]

    @abstractmethod
    def open_session(self, config: AnalysisConfig) -> AnalysisSession:
        """Start an empty session for one file."""

    def restore_session(self, config: AnalysisConfig, content: str) -> AnalysisSession:
        """Start a session already holding ``content``."""
        session = self.open_session(config)
        if content:
            session.commit(session.stage(content))
        return session

    def analyze(self, text: str, config: AnalysisConfig) -> AnalysisResult:
        """One-shot analysis of a complete text (single-chunk shortcut)."""
        started = time.monotonic()
        session = self.open_session(config)
        counts = session.commit(session.stage(text))
        stats = replace(
            ProcessingStats(total_chunks=1).with_counts(counts),
            processing_time_ms=(time.monotonic() - started) * 1000,
        )
        return session.result(stats)
