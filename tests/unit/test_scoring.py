import pytest

from contentguard.analysis.basic_analyzer import BasicAnalyzer
from contentguard.analysis.models import AnalysisConfig, Decision
from contentguard.analysis.scoring import SAFE_REASON, build_reasons, decide, risk_score


class TestRiskScore:
    def test_all_signals_cap_at_one(self) -> None:
        assert risk_score(["secret"], ["123456789"], 10.0, 4.8) == pytest.approx(1.0)

    def test_no_signals(self) -> None:
        assert risk_score([], [], 0.0, 4.8) == 0.0

    def test_entropy_is_scaled(self) -> None:
        assert risk_score([], [], 2.4, 4.8) == pytest.approx(0.15)

    @pytest.mark.parametrize("entropy", [0.0, 1.0, 4.8, 7.5, 100.0])
    def test_always_in_unit_range(self, entropy: float) -> None:
        for banned in ([], ["x"]):
            for pii in ([], ["y"]):
                assert 0.0 <= risk_score(banned, pii, entropy, 4.8) <= 1.0


class TestDecide:
    def test_boundary_blocks(self) -> None:
        assert decide(0.6, 0.6) is Decision.BLOCK

    def test_below_threshold_allows(self) -> None:
        assert decide(0.5999, 0.6) is Decision.ALLOW

    def test_crafted_score_of_exactly_threshold_blocks(self) -> None:
        # PII present plus entropy at the threshold: 0.0 + 0.3 + 0.3
        score = risk_score([], ["123456789"], 4.8, 4.8)
        assert score == 0.6
        assert decide(score, 0.6) is Decision.BLOCK


class TestBuildReasons:
    def test_fixed_order(self) -> None:
        reasons = build_reasons(2, 1, 5.0, 4.8)
        assert reasons[0] == "Found 2 banned phrase(s)"
        assert reasons[1] == "Detected 1 PII pattern(s)"
        assert reasons[2].startswith("High entropy content detected")

    def test_safe_default(self) -> None:
        assert build_reasons(0, 0, 1.0, 4.8) == [SAFE_REASON]

    def test_entropy_at_threshold_is_not_flagged(self) -> None:
        assert build_reasons(0, 0, 4.8, 4.8) == [SAFE_REASON]


class TestScenarios:
    def test_banned_phrase_content_blocks(self) -> None:
        result = BasicAnalyzer().analyze(
            "This contains confidential information that should be blocked",
            AnalysisConfig(),
        )
        assert result.decision is Decision.BLOCK
        assert result.risk_score > 0.6
        assert "banned phrase" in result.reasons[0]
        assert result.banned_phrases == ["confidential"]

    def test_safe_content_allows(self) -> None:
        result = BasicAnalyzer().analyze(
            "This is safe content with no security concerns", AnalysisConfig()
        )
        assert result.decision is Decision.ALLOW
        assert result.risk_score < 0.6
        assert result.reasons == [SAFE_REASON]

    def test_empty_content_is_safe(self) -> None:
        result = BasicAnalyzer().analyze("", AnalysisConfig())
        assert result.entropy == 0.0
        assert result.decision is Decision.ALLOW
        assert result.reasons == [SAFE_REASON]
        assert result.stats.total_chunks == 1
