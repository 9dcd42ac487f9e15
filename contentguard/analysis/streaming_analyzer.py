"""Incremental analysis engine.

Running totals must always describe the *entire* content received so far,
but recomputing every detector over the whole content on each chunk is
quadratic over a long stream. This engine keeps incremental state instead
and produces output identical to a full recompute:

1. Character frequencies of the normalized content (entropy needs nothing
   else).
2. A token counter over the *settled* region. Content is settled up to the
   start of its trailing non-whitespace run; tokens and PII matches before
   that point can no longer change when more text arrives.
3. PII matches found in the settled region, with absolute positions.
4. The set of banned phrases already found. A phrase not yet found is
   searched in the last ``len(longest phrase) - 1`` characters of previous
   content plus the new chunk, so phrases spanning chunks are caught.

The unsettled trailing run is re-scanned on every chunk and at finalize.
"""

from collections import Counter
from dataclasses import dataclass

from contentguard.analysis import detectors
from contentguard.analysis.base import AnalysisSession, BaseAnalyzer
from contentguard.analysis.models import (
    AnalysisConfig,
    AnalysisResult,
    ContentCounts,
    PiiMatch,
    ProcessingStats,
)
from contentguard.analysis.scoring import build_result


@dataclass(frozen=True)
class _StagedChunk:
    owner: int
    text: str
    char_counts: Counter[str]
    settled_words: Counter[str]
    settled_pii: list[PiiMatch]
    settled_length: int
    pending: str
    new_phrases: tuple[str, ...]
    recent: str
    counts: ContentCounts


class StreamingSession(AnalysisSession):
    def __init__(self, config: AnalysisConfig) -> None:
        self._config = config
        self._detectors = detectors.resolve_detectors(config.pii_detectors)
        self._phrases = detectors.unique_phrases(config.banned_phrases)
        self._lowered_phrases = [(p, p.lower()) for p in self._phrases]
        self._window = max((len(p) for p in self._phrases), default=1) - 1

        self._parts: list[str] = []
        self._length = 0
        self._char_counts: Counter[str] = Counter()
        self._word_counts: Counter[str] = Counter()
        self._pii: list[PiiMatch] = []
        self._found: set[str] = set()
        self._pending = ""
        self._pending_offset = 0
        self._recent = ""

    @property
    def content(self) -> str:
        if len(self._parts) > 1:
            self._parts = ["".join(self._parts)]
        return self._parts[0] if self._parts else ""

    def stage(self, text: str) -> _StagedChunk:
        combined = self._pending + text
        cut = detectors.settle_point(combined)
        settled, pending = combined[:cut], combined[cut:]

        settled_words = Counter(detectors.tokenize(settled))
        settled_pii = detectors.pii_hits(settled, self._detectors, self._pending_offset)
        pending_words = detectors.tokenize(pending)
        pending_pii = detectors.pii_hits(
            pending, self._detectors, self._pending_offset + cut
        )

        window = self._recent + text
        lowered = window.lower()
        new_phrases = tuple(
            phrase
            for phrase, needle in self._lowered_phrases
            if phrase not in self._found and needle in lowered
        )
        recent = window[-self._window:] if self._window > 0 else ""

        new_words = {
            word
            for word in (*settled_words, *pending_words)
            if word not in self._word_counts
        }
        counts = ContentCounts(
            content_length=self._length + len(text),
            unique_word_count=len(self._word_counts) + len(new_words),
            banned_phrase_count=len(self._found) + len(new_phrases),
            pii_pattern_count=len(self._pii) + len(settled_pii) + len(pending_pii),
        )
        return _StagedChunk(
            owner=id(self),
            text=text,
            char_counts=Counter(detectors.normalize(text)),
            settled_words=settled_words,
            settled_pii=settled_pii,
            settled_length=cut,
            pending=pending,
            new_phrases=new_phrases,
            recent=recent,
            counts=counts,
        )

    def commit(self, staged: object) -> ContentCounts:
        if not isinstance(staged, _StagedChunk) or staged.owner != id(self):
            raise ValueError("Staged chunk does not belong to this session")
        self._parts.append(staged.text)
        self._length += len(staged.text)
        self._char_counts.update(staged.char_counts)
        self._word_counts.update(staged.settled_words)
        self._pii.extend(staged.settled_pii)
        self._found.update(staged.new_phrases)
        self._pending = staged.pending
        self._pending_offset += staged.settled_length
        self._recent = staged.recent
        return staged.counts

    def result(self, stats: ProcessingStats) -> AnalysisResult:
        words = self._word_counts.copy()
        words.update(detectors.tokenize(self._pending))
        pii = self._pii + detectors.pii_hits(
            self._pending, self._detectors, self._pending_offset
        )
        return build_result(
            entropy=detectors.entropy_from_counts(self._char_counts),
            banned=[p for p in self._phrases if p in self._found],
            pii=pii,
            words=detectors.top_words(words, self._config.stopwords, self._config.max_words),
            stats=stats,
            config=self._config,
            engine=StreamingAnalyzer.name,
        )


class StreamingAnalyzer(BaseAnalyzer):
    """Primary engine: incremental detectors, O(chunk) work per chunk."""

    name = "streaming"

    def open_session(self, config: AnalysisConfig) -> StreamingSession:
        return StreamingSession(config)
