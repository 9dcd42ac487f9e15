from collections import Counter
from dataclasses import dataclass

from contentguard.analysis import detectors
from contentguard.analysis.base import AnalysisSession, BaseAnalyzer
from contentguard.analysis.models import (
    AnalysisConfig,
    AnalysisResult,
    ContentCounts,
    ProcessingStats,
)
from contentguard.analysis.scoring import build_result


@dataclass(frozen=True)
class _StagedContent:
    owner: int
    content: str
    counts: ContentCounts


class BasicSession(AnalysisSession):
    """Keeps only the raw content and re-runs every detector over all of it."""

    def __init__(self, config: AnalysisConfig, content: str = "") -> None:
        self._config = config
        self._detectors = detectors.resolve_detectors(config.pii_detectors)
        self._content = content

    @property
    def content(self) -> str:
        return self._content

    def stage(self, text: str) -> _StagedContent:
        content = self._content + text
        return _StagedContent(
            owner=id(self),
            content=content,
            counts=ContentCounts(
                content_length=len(content),
                unique_word_count=len(set(detectors.tokenize(content))),
                banned_phrase_count=len(
                    detectors.banned_phrase_hits(content, self._config.banned_phrases)
                ),
                pii_pattern_count=len(detectors.pii_hits(content, self._detectors)),
            ),
        )

    def commit(self, staged: object) -> ContentCounts:
        if not isinstance(staged, _StagedContent) or staged.owner != id(self):
            raise ValueError("Staged chunk does not belong to this session")
        self._content = staged.content
        return staged.counts

    def result(self, stats: ProcessingStats) -> AnalysisResult:
        return build_result(
            entropy=detectors.entropy(self._content),
            banned=detectors.banned_phrase_hits(self._content, self._config.banned_phrases),
            pii=detectors.pii_hits(self._content, self._detectors),
            words=detectors.top_words(
                Counter(detectors.tokenize(self._content)),
                self._config.stopwords,
                self._config.max_words,
            ),
            stats=stats,
            config=self._config,
            engine=BasicAnalyzer.name,
        )


class BasicAnalyzer(BaseAnalyzer):
    """Degraded fallback engine: no incremental state, O(content) per chunk."""

    name = "basic"

    def open_session(self, config: AnalysisConfig) -> BasicSession:
        return BasicSession(config)

    def restore_session(self, config: AnalysisConfig, content: str) -> BasicSession:
        return BasicSession(config, content)
