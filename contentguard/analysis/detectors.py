"""Pure content detectors shared by every analysis engine.

All functions are total: empty or malformed input yields the safe default
(zero entropy, no hits, no words) and nothing here raises on content.
"""

import math
import re
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence

from contentguard.analysis.models import PiiMatch, WordCount

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_WORD_RE = re.compile(r"\w+")

# None of these patterns may match whitespace; the incremental scanner
# relies on matches never straddling a whitespace boundary.
PII_DETECTORS: dict[str, re.Pattern[str]] = {
    "digit_run": re.compile(r"\b\d{9,12}\b"),
    "ssn": re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    "credit_card": re.compile(r"\b(?:\d{4}-\d{4}-\d{4}-\d{4}|\d{16})\b"),
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
}


def normalize(text: str) -> str:
    """Lowercase and keep only ASCII letters and digits."""
    return _NON_ALNUM_RE.sub("", text.lower())


def entropy_from_counts(counts: Mapping[str, int]) -> float:
    """Shannon entropy (bits per symbol) of a frequency table."""
    total = sum(counts.values())
    if total == 0:
        return 0.0
    result = 0.0
    for count in counts.values():
        probability = count / total
        result -= probability * math.log2(probability)
    return result


def entropy(text: str) -> float:
    return entropy_from_counts(Counter(normalize(text)))


def unique_phrases(phrases: Iterable[str]) -> list[str]:
    """Drop empty and duplicate phrases, keeping configured order."""
    return [p for p in dict.fromkeys(phrases) if p]


def banned_phrase_hits(text: str, phrases: Iterable[str]) -> list[str]:
    """Case-insensitive containment test for each configured phrase."""
    lowered = text.lower()
    return [p for p in unique_phrases(phrases) if p.lower() in lowered]


def resolve_detectors(names: Iterable[str]) -> list[tuple[str, re.Pattern[str]]]:
    detectors: list[tuple[str, re.Pattern[str]]] = []
    for name in dict.fromkeys(names):
        pattern = PII_DETECTORS.get(name)
        if pattern is None:
            raise ValueError(
                f"Unknown PII detector '{name}'. Choose from: {list(PII_DETECTORS)}"
            )
        detectors.append((name, pattern))
    return detectors


def pii_hits(
    text: str,
    detectors: Sequence[tuple[str, re.Pattern[str]]],
    offset: int = 0,
) -> list[PiiMatch]:
    """Find PII-shaped substrings, ordered by position then detector order.

    ``offset`` is added to every reported position so callers can scan a
    slice of a larger document.
    """
    found: list[tuple[int, int, PiiMatch]] = []
    for index, (name, pattern) in enumerate(detectors):
        for m in pattern.finditer(text):
            found.append((m.start(), index, PiiMatch(name, m.group(), offset + m.start())))
    found.sort(key=lambda item: (item[0], item[1]))
    return [match for _, _, match in found]


def tokenize(text: str) -> list[str]:
    return _WORD_RE.findall(text.lower())


def top_words(
    counts: Mapping[str, int],
    stopwords: Iterable[str],
    max_words: int,
) -> list[WordCount]:
    """Most frequent display words: longer than 3 chars and not a stopword.

    This view is deliberately narrower than the token set behind the unique
    word count. Ties keep first-occurrence order.
    """
    excluded = {w.lower() for w in stopwords}
    candidates = [
        (word, count)
        for word, count in counts.items()
        if len(word) > 3 and word not in excluded
    ]
    candidates.sort(key=lambda item: item[1], reverse=True)
    return [WordCount(word, count) for word, count in candidates[:max_words]]


def settle_point(text: str) -> int:
    """Index where the trailing run of non-whitespace characters starts.

    Everything before this index can no longer change its tokens or PII
    matches when more text is appended.
    """
    index = len(text)
    while index > 0 and not text[index - 1].isspace():
        index -= 1
    return index
