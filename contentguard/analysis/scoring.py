from collections.abc import Sequence

from contentguard.analysis.models import (
    AnalysisConfig,
    AnalysisResult,
    Decision,
    PiiMatch,
    ProcessingStats,
    WordCount,
)

BANNED_WEIGHT = 0.4
PII_WEIGHT = 0.3
ENTROPY_WEIGHT = 0.3

SAFE_REASON = "No security concerns detected"


def risk_score(
    banned_hits: Sequence[object],
    pii_hits: Sequence[object],
    entropy: float,
    entropy_threshold: float = 4.8,
) -> float:
    """Weighted risk in [0, 1]: banned phrases, PII, then scaled entropy."""
    banned_score = 1.0 if banned_hits else 0.0
    pii_score = 1.0 if pii_hits else 0.0
    entropy_score = min(entropy / entropy_threshold, 1.0) if entropy_threshold > 0 else 1.0
    score = (
        BANNED_WEIGHT * banned_score
        + PII_WEIGHT * pii_score
        + ENTROPY_WEIGHT * entropy_score
    )
    assert -1e-9 <= score <= 1.0 + 1e-9, f"risk score out of range: {score}"
    return min(max(score, 0.0), 1.0)


def decide(score: float, risk_threshold: float = 0.6) -> Decision:
    """Block when the score reaches the threshold (inclusive)."""
    return Decision.BLOCK if score >= risk_threshold else Decision.ALLOW


def build_reasons(
    banned_count: int,
    pii_count: int,
    entropy: float,
    entropy_threshold: float,
) -> list[str]:
    reasons: list[str] = []
    if banned_count > 0:
        reasons.append(f"Found {banned_count} banned phrase(s)")
    if pii_count > 0:
        reasons.append(f"Detected {pii_count} PII pattern(s)")
    if entropy > entropy_threshold:
        reasons.append(f"High entropy content detected ({entropy:.2f} bits/char)")
    return reasons or [SAFE_REASON]


def build_result(
    *,
    entropy: float,
    banned: list[str],
    pii: list[PiiMatch],
    words: list[WordCount],
    stats: ProcessingStats,
    config: AnalysisConfig,
    engine: str,
) -> AnalysisResult:
    """Assemble the verdict from already-computed detector outputs."""
    score = risk_score(banned, pii, entropy, config.entropy_threshold)
    return AnalysisResult(
        risk_score=score,
        decision=decide(score, config.risk_threshold),
        reasons=build_reasons(len(banned), len(pii), entropy, config.entropy_threshold),
        entropy=entropy,
        top_words=words,
        banned_phrases=banned,
        pii_patterns=pii,
        stats=stats,
        engine=engine,
    )
